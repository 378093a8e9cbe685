"""Coercion of raw environment strings into typed leaf values."""

from __future__ import annotations

import math
import re
from typing import Any, Callable

from ._types import (
    InvalidBooleanError,
    InvalidNumberError,
    LeafType,
    NumberOverflowError,
    Secret,
    SemanticType,
    _Undefined,
)

# ---------------------------------------------------------------------------
# Bool caster
# ---------------------------------------------------------------------------

TRUTHY = frozenset({"1", "true", "yes", "on", "t", "y"})
FALSY = frozenset({"0", "false", "no", "off", "f", "n"})


def _cast_bool(raw: str, expected: LeafType) -> bool:
    """Cast a string to ``bool`` using the fixed token sets above.

    Matching is case-insensitive and ignores surrounding whitespace. The empty
    string is not a boolean.
    """
    lower = raw.strip().lower()
    if lower in TRUTHY:
        return True
    if lower in FALSY:
        return False
    raise InvalidBooleanError(raw, expected)


# ---------------------------------------------------------------------------
# Number casters
# ---------------------------------------------------------------------------

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1

# A literal matching this grammar that int() still rejects exceeds the
# interpreter's digit limit.
_INT_LITERAL = re.compile(r"^\s*[+-]?\d+(?:_\d+)*\s*$")

_INFINITY_LITERALS = frozenset({"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity"})


def _cast_int(raw: str, expected: LeafType) -> int:
    try:
        value = int(raw, 10)
    except ValueError:
        if _INT_LITERAL.match(raw):
            raise NumberOverflowError(raw, expected) from None
        raise InvalidNumberError(raw, expected) from None
    if not INT_MIN <= value <= INT_MAX:
        raise NumberOverflowError(raw, expected)
    return value


def _cast_float(raw: str, expected: LeafType) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise InvalidNumberError(raw, expected) from None
    # float() saturates to inf instead of failing on huge finite literals.
    if math.isinf(value) and raw.strip().lower() not in _INFINITY_LITERALS:
        raise NumberOverflowError(raw, expected)
    return value


def _cast_str(raw: str, expected: LeafType) -> str:
    return raw


_CASTERS: dict[SemanticType, Callable[[str, LeafType], Any]] = {
    SemanticType.STRING: _cast_str,
    SemanticType.BOOLEAN: _cast_bool,
    SemanticType.INTEGER: _cast_int,
    SemanticType.FLOAT: _cast_float,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def coerce(raw: str | _Undefined, expected: LeafType) -> Any:
    """Convert *raw* to the Python value described by *expected*.

    ``UNDEFINED`` stands for an absent variable and is only meaningful for
    optional leaves, where it yields ``None``. Secret leaves are wrapped in
    :class:`Secret` after conversion.

    Raises a ``CoercionError`` subclass for malformed literals.
    """
    if isinstance(raw, _Undefined):
        if expected.optional:
            return None
        raise ValueError(f"an absent value cannot be coerced to {expected}")

    value = _CASTERS[expected.kind](raw, expected)
    if expected.secret:
        return Secret(value)
    return value

