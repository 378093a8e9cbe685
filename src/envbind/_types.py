"""Foundation types for envbind.

Provides the absent-value sentinel, the semantic type model, field paths,
exception classes, and the Secret wrapper type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, Sequence, TypeVar, get_args

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Sentinel
# ---------------------------------------------------------------------------


class _Undefined:
    """Sentinel for absent environment values (distinct from ``None``)."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


# ---------------------------------------------------------------------------
# Semantic types
# ---------------------------------------------------------------------------


class SemanticType(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LeafType:
    """Declared type of a leaf field: a semantic type plus its wrappers."""

    kind: SemanticType
    optional: bool = False
    secret: bool = False

    def __str__(self) -> str:
        text = self.kind.value
        if self.secret:
            text = f"secret[{text}]"
        if self.optional:
            text = f"optional[{text}]"
        return text


# ---------------------------------------------------------------------------
# Field paths
# ---------------------------------------------------------------------------


class FieldPath(tuple):
    """Immutable sequence of field-name segments, outermost first.

    >>> FieldPath(["db"]).child("port")
    FieldPath('db', 'port')
    """

    def __new__(cls, segments: Iterable[str] = ()) -> FieldPath:
        return super().__new__(cls, segments)

    def child(self, segment: str) -> FieldPath:
        return FieldPath((*self, segment))

    @classmethod
    def parse(cls, path: str | Sequence[str]) -> FieldPath:
        """Build a path from a dotted string (``"db.port"``) or a sequence."""
        if isinstance(path, str):
            return cls(path.split("."))
        return cls(path)

    def __repr__(self) -> str:
        return f"FieldPath({', '.join(repr(s) for s in self)})"

    def __str__(self) -> str:
        return ".".join(self) or "<root>"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Base exception for envbind errors."""


class InvalidShapeError(ConfigError):
    """Raised when a record shape cannot be bound under a naming policy."""


class FieldError(ConfigError):
    """A single leaf field that could not be resolved.

    ``path`` and ``key`` are filled in by whoever knows the field's location;
    the coercer raises these errors without one.
    """

    def __init__(self, *, path: Sequence[str] = (), key: str | None = None) -> None:
        self.path = FieldPath(path)
        self.key = key
        super().__init__()

    def at(self, path: Sequence[str], key: str | None) -> FieldError:
        """Attach the field location and return ``self``."""
        self.path = FieldPath(path)
        self.key = key
        return self

    def describe(self) -> str:
        return "could not be resolved"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __str__(self) -> str:
        location = []
        if self.path:
            location.append(f"field '{self.path}'")
        if self.key is not None:
            location.append(f"variable '{self.key}'")
        if not location:
            return self.describe()
        return f"{' / '.join(location)}: {self.describe()}"


class MissingVariableError(FieldError):
    """Raised when a required leaf's environment variable is not set."""

    def __init__(self, key: str, *, path: Sequence[str] = ()) -> None:
        super().__init__(path=path, key=key)

    def describe(self) -> str:
        return "required but not set"


class CoercionError(FieldError, ValueError):
    """Raised when a raw string cannot be converted to the declared type."""

    def __init__(
        self,
        raw: str,
        expected: LeafType,
        *,
        path: Sequence[str] = (),
        key: str | None = None,
    ) -> None:
        self.raw = raw
        self.expected = expected
        super().__init__(path=path, key=key)

    @property
    def shown_raw(self) -> str:
        return "'***'" if self.expected.secret else repr(self.raw)

    def describe(self) -> str:
        return f"cannot convert {self.shown_raw} to {self.expected}"


class InvalidBooleanError(CoercionError):
    def describe(self) -> str:
        return f"{self.shown_raw} is not a recognised boolean"


class InvalidNumberError(CoercionError):
    def describe(self) -> str:
        return f"{self.shown_raw} is not a valid {self.expected.kind}"


class NumberOverflowError(CoercionError):
    def describe(self) -> str:
        return f"{self.shown_raw} is out of range for {self.expected.kind}"


class BindError(ConfigError):
    """Aggregate of every field that failed during a single bind."""

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors: tuple[FieldError, ...] = tuple(errors)
        super().__init__(self._format())

    @property
    def missing_keys(self) -> list[str]:
        return [e.key for e in self.errors if isinstance(e, MissingVariableError) and e.key]

    def _format(self) -> str:
        count = len(self.errors)
        noun = "field" if count == 1 else "fields"
        lines = [f"{count} {noun} could not be loaded from the environment:"]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Secret
# ---------------------------------------------------------------------------


class Secret(Generic[T]):
    """Wraps a value so it is redacted in ``repr`` / ``str`` output.

    Access the real value via ``.secret_value``.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T) -> None:
        object.__setattr__(self, "_value", value)

    @property
    def secret_value(self) -> T:
        return self._value  # type: ignore[return-value]

    # -- redaction ----------------------------------------------------------

    def __repr__(self) -> str:
        return "Secret('***')"

    def __str__(self) -> str:
        return "***"

    # -- comparison ---------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Secret):
            return bool(self._value == other._value)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    # -- Pydantic v2 integration --------------------------------------------

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        args = get_args(source_type)
        inner_type = args[0] if args else Any
        handler.generate_schema(inner_type)

        def _validate(value: Any) -> "Secret[Any]":
            if isinstance(value, Secret):
                return value
            return Secret(value)

        def _serialize(value: "Secret[Any]", _info: Any) -> str:
            return "***"

        return core_schema.no_info_plain_validator_function(
            _validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                _serialize,
                info_arg=True,
            ),
            metadata={"pydantic_js_functions": []},
        )
