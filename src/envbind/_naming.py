"""Naming policy and the field-path to environment-key resolver."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from ._types import InvalidShapeError

Casing = Literal["upper", "lower", "preserve"]
EmptySegments = Literal["reject", "collapse"]

_CASINGS = ("upper", "lower", "preserve")
_EMPTY_SEGMENTS = ("reject", "collapse")


@dataclass(frozen=True)
class NamingPolicy:
    """Rules for turning a field path into an environment variable name.

    Attributes:
        prefix: Segments prepended to every path, e.g. ``("app",)``. A plain
            string is treated as a single segment.
        separator: Token placed between segments.
        casing: ``"upper"``, ``"lower"`` or ``"preserve"``; applied per segment.
        empty_segments: ``"reject"`` treats an empty segment, or one that starts
            or ends with a separator character, or that contains a doubled
            separator, as a shape error. ``"collapse"`` strips separator
            characters from segment ends, folds doubled separators into one
            and drops segments that end up empty.
    """

    prefix: tuple[str, ...] = ()
    separator: str = "__"
    casing: Casing = "upper"
    empty_segments: EmptySegments = "reject"

    def __post_init__(self) -> None:
        if isinstance(self.prefix, str):
            object.__setattr__(self, "prefix", (self.prefix,) if self.prefix else ())
        else:
            object.__setattr__(self, "prefix", tuple(self.prefix))
        if not self.separator:
            raise ValueError("separator must be a non-empty string")
        if self.casing not in _CASINGS:
            raise ValueError(f"casing must be one of {list(_CASINGS)}, got {self.casing!r}")
        if self.empty_segments not in _EMPTY_SEGMENTS:
            raise ValueError(
                f"empty_segments must be one of {list(_EMPTY_SEGMENTS)}, "
                f"got {self.empty_segments!r}"
            )

    # -- segment handling ---------------------------------------------------

    def segment_problem(self, segment: str) -> str | None:
        """Return why *segment* is malformed under this policy, or ``None``."""
        if self.empty_segments == "collapse":
            return None
        if not segment:
            return "empty segment"
        edge = set(self.separator)
        if segment[0] in edge or segment[-1] in edge:
            return f"segment {segment!r} starts or ends with a separator character"
        if self.separator * 2 in segment:
            return f"segment {segment!r} contains a doubled separator"
        return None

    def _normalise(self, segment: str) -> str:
        if self.empty_segments == "collapse":
            segment = segment.strip(self.separator)
            doubled = self.separator * 2
            while doubled in segment:
                segment = segment.replace(doubled, self.separator)
        if self.casing == "upper":
            return segment.upper()
        if self.casing == "lower":
            return segment.lower()
        return segment

    def with_prefix(self, *segments: str) -> NamingPolicy:
        """Return a copy with *segments* appended to the prefix."""
        return NamingPolicy(
            prefix=(*self.prefix, *segments),
            separator=self.separator,
            casing=self.casing,
            empty_segments=self.empty_segments,
        )


DEFAULT_POLICY = NamingPolicy()


def resolve(path: Sequence[str], policy: NamingPolicy = DEFAULT_POLICY) -> str:
    """Return the environment variable name for *path*.

    >>> resolve(["db", "port"], NamingPolicy(prefix="app"))
    'APP__DB__PORT'
    """
    if not path:
        raise InvalidShapeError("cannot resolve an empty field path")

    segments = (*policy.prefix, *path)
    for segment in segments:
        problem = policy.segment_problem(segment)
        if problem is not None:
            raise InvalidShapeError(f"cannot resolve {list(path)!r}: {problem}")

    parts = [policy._normalise(segment) for segment in segments]
    key = policy.separator.join(part for part in parts if part)
    if not key:
        raise InvalidShapeError(f"field path {list(path)!r} resolves to an empty name")
    return key
