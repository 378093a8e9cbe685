"""``env_var()``: read and coerce a single variable by field path.

Lookup order:
1. Environment variable named by resolving *path* under the naming policy
2. Default value (returned as-is, **not** coerced)
3. ``None`` for optional types
4. Raise ``MissingVariableError``
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from ._casters import coerce
from ._environment import EnvironmentStore, OsEnvironment, as_environment
from ._naming import DEFAULT_POLICY, NamingPolicy, resolve
from ._shape import leaf_type_for
from ._types import UNDEFINED, CoercionError, FieldPath, MissingVariableError, _Undefined

# ---------------------------------------------------------------------------
# Module-level environment management
# ---------------------------------------------------------------------------

_active_environment: EnvironmentStore | None = None


def set_environment(env: EnvironmentStore | Mapping[str, str] | None) -> None:
    """Set the module-level environment store (``None`` resets to ``os.environ``)."""
    global _active_environment
    _active_environment = as_environment(env) if env is not None else None


def get_environment() -> EnvironmentStore | None:
    """Return the current module-level environment store (may be ``None``)."""
    return _active_environment


def _auto_environment() -> EnvironmentStore:
    """Lazily snapshot ``os.environ`` if no environment is set."""
    global _active_environment
    if _active_environment is None:
        _active_environment = OsEnvironment()
    return _active_environment


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def env_var(
    path: str | Sequence[str],
    *,
    cast: Any = str,
    default: Any = UNDEFINED,
    policy: NamingPolicy | None = None,
    env: EnvironmentStore | Mapping[str, str] | None = None,
) -> Any:
    """Read one environment variable with type coercion and fail-fast semantics.

    Parameters
    ----------
    path:
        Field path, either dotted (``"db.port"``) or a sequence of segments.
        Resolved to a key with *policy* (``"db.port"`` -> ``DB__PORT``).
    cast:
        Declared type: ``str``, ``bool``, ``int``, ``float``, optionally wrapped
        in ``Optional[...]`` and/or ``Secret[...]``.
    default:
        Fallback if the variable is not set. Returned **as-is**.
    policy:
        Naming policy; defaults to ``DEFAULT_POLICY``.
    env:
        Per-call environment override. Falls back to the module-level store.
    """
    field_path = FieldPath.parse(path)
    expected = leaf_type_for(cast)
    key = resolve(field_path, policy or DEFAULT_POLICY)
    store = as_environment(env) if env is not None else _auto_environment()

    raw = store.get(key)
    if raw is not None:
        try:
            return coerce(raw, expected)
        except CoercionError as exc:
            exc.at(field_path, key)
            raise

    if not isinstance(default, _Undefined):
        return default
    if expected.optional:
        return None
    raise MissingVariableError(key, path=field_path)
