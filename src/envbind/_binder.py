"""The binder: walks a record shape and assembles it from an environment.

Failures are collected, not raised at the first bad field: every missing or
malformed variable in the shape is reported together in one ``BindError``,
ordered depth-first by field declaration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

from ._casters import coerce
from ._environment import EnvironmentStore, as_environment
from ._naming import DEFAULT_POLICY, NamingPolicy
from ._shape import FieldDescriptor, RecordShape, check_shape
from ._types import (
    BindError,
    CoercionError,
    FieldError,
    FieldPath,
    LeafType,
    MissingVariableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BindResult(Generic[T]):
    """Outcome of :func:`try_bind`: a record value or the fields that failed."""

    value: T | None = None
    errors: tuple[FieldError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> T:
        """Return the record, or raise ``BindError`` listing every failure."""
        if self.errors:
            raise BindError(self.errors)
        return self.value  # type: ignore[return-value]


class _Walk:
    """State of one bind call; discarded when the call returns."""

    def __init__(self, env: EnvironmentStore, keys: dict[FieldPath, str]) -> None:
        self.env = env
        self.keys = keys
        self.errors: list[FieldError] = []

    def record(self, shape: RecordShape, path: FieldPath) -> Any:
        failed_before = len(self.errors)
        values: dict[str, Any] = {}
        for descriptor in shape.fields:
            child = path.child(descriptor.name)
            if isinstance(descriptor.kind, RecordShape):
                if descriptor.has_default and self.all_absent(descriptor.kind, child):
                    logger.debug("%s: no variables set, using default", child)
                    values[descriptor.name] = descriptor.make_default()
                else:
                    values[descriptor.name] = self.record(descriptor.kind, child)
            else:
                values[descriptor.name] = self.leaf(descriptor, descriptor.kind, child)

        if len(self.errors) > failed_before:
            return None
        return shape.factory(values)

    def all_absent(self, shape: RecordShape, path: FieldPath) -> bool:
        return all(self.env.get(self.keys[leaf]) is None for leaf, _ in shape.leaves(path))

    def leaf(self, descriptor: FieldDescriptor, expected: LeafType, path: FieldPath) -> Any:
        key = self.keys[path]
        raw = self.env.get(key)

        if raw is None:
            logger.debug("%s: %s is not set", path, key)
            if descriptor.has_default:
                return descriptor.make_default()
            if expected.optional:
                return None
            self.errors.append(MissingVariableError(key, path=path))
            return None

        logger.debug("%s: read %s", path, key)
        try:
            return coerce(raw, expected)
        except CoercionError as exc:
            self.errors.append(exc.at(path, key))
            return None


def try_bind(
    shape: RecordShape,
    env: EnvironmentStore | Mapping[str, str] | None = None,
    policy: NamingPolicy | None = None,
) -> BindResult[Any]:
    """Bind *shape* against *env* and report failures as a value.

    Parameters
    ----------
    shape:
        Field tree to populate.
    env:
        Environment store or plain mapping. Defaults to the module-level
        environment (a snapshot of ``os.environ`` unless overridden).
    policy:
        Naming policy for keys; defaults to ``DEFAULT_POLICY``.

    Raises ``InvalidShapeError`` before any lookup if the shape cannot be bound
    under *policy*.
    """
    from ._reader import _auto_environment

    active_policy = policy or DEFAULT_POLICY
    store = as_environment(env) if env is not None else _auto_environment()

    keys = check_shape(shape, active_policy)
    logger.debug("Binding %s (%d variables)", shape.name, len(keys))

    walk = _Walk(store, keys)
    value = walk.record(shape, FieldPath())
    if walk.errors:
        logger.debug("Binding %s failed for %d field(s)", shape.name, len(walk.errors))
        return BindResult(errors=tuple(walk.errors))
    return BindResult(value=value)


def bind(
    shape: RecordShape,
    env: EnvironmentStore | Mapping[str, str] | None = None,
    policy: NamingPolicy | None = None,
) -> Any:
    """Bind *shape* against *env*; raise ``BindError`` if any field fails."""
    return try_bind(shape, env, policy).unwrap()
