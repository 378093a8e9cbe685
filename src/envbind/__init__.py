"""Typed, nested settings populated from environment variables.

Each leaf field's variable name is derived from its field path and a naming
policy (``db.port`` -> ``APP__DB__PORT``); values are coerced to the declared
type and every missing or malformed variable is reported in one error.
"""

from ._binder import BindResult, bind, try_bind
from ._casters import coerce
from ._environment import EnvironmentStore, MappingEnvironment, OsEnvironment
from ._naming import DEFAULT_POLICY, NamingPolicy, resolve
from ._reader import env_var, get_environment, set_environment
from ._settings import EnvSettings
from ._shape import FieldDescriptor, RecordShape, check_shape, shape_from_names, shape_of
from ._testing import override_environment
from ._types import (
    UNDEFINED,
    BindError,
    CoercionError,
    ConfigError,
    FieldError,
    FieldPath,
    InvalidBooleanError,
    InvalidNumberError,
    InvalidShapeError,
    LeafType,
    MissingVariableError,
    NumberOverflowError,
    Secret,
    SemanticType,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core
    "bind",
    "try_bind",
    "BindResult",
    "resolve",
    "coerce",
    "env_var",
    # Naming
    "NamingPolicy",
    "DEFAULT_POLICY",
    # Shapes
    "RecordShape",
    "FieldDescriptor",
    "FieldPath",
    "LeafType",
    "SemanticType",
    "shape_of",
    "shape_from_names",
    "check_shape",
    # Typed groups
    "EnvSettings",
    "Secret",
    "UNDEFINED",
    # Errors
    "ConfigError",
    "InvalidShapeError",
    "FieldError",
    "MissingVariableError",
    "CoercionError",
    "InvalidBooleanError",
    "InvalidNumberError",
    "NumberOverflowError",
    "BindError",
    # Environment
    "EnvironmentStore",
    "OsEnvironment",
    "MappingEnvironment",
    "get_environment",
    "set_environment",
    # Testing
    "override_environment",
]
