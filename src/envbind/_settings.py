"""Declarative settings classes using Pydantic BaseModel.

Subclass ``EnvSettings`` and declare fields + a ``Meta`` inner class::

    class Database(BaseModel):
        host: str
        port: int = 5432

    class AppSettings(EnvSettings):
        class Meta:
            prefix = "app"

        debug: bool = False
        api_key: Secret[str]
        timeout: Optional[float] = None
        db: Database

    settings = AppSettings.load()
    settings.db.port    # read from APP__DB__PORT
    settings.api_key    # Secret instance, repr shows '***'
"""

from __future__ import annotations

from typing import Mapping, TypeVar

from pydantic import BaseModel, ConfigDict

from ._binder import bind
from ._environment import EnvironmentStore
from ._naming import NamingPolicy
from ._shape import check_shape, shape_of

S = TypeVar("S", bound="EnvSettings")


class EnvSettings(BaseModel):
    """Base class for settings populated from environment variables."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    class Meta:
        prefix: str = ""
        separator: str = "__"
        casing: str = "upper"
        empty_segments: str = "reject"

    @classmethod
    def naming_policy(cls) -> NamingPolicy:
        """Build the naming policy from ``Meta``, falling back to the defaults."""
        meta = cls.Meta
        defaults = EnvSettings.Meta
        return NamingPolicy(
            prefix=getattr(meta, "prefix", defaults.prefix),
            separator=getattr(meta, "separator", defaults.separator),
            casing=getattr(meta, "casing", defaults.casing),  # type: ignore[arg-type]
            empty_segments=getattr(meta, "empty_segments", defaults.empty_segments),  # type: ignore[arg-type]
        )

    @classmethod
    def load(cls: type[S], env: EnvironmentStore | Mapping[str, str] | None = None) -> S:
        """Load every field from the environment and return a validated instance.

        Raises ``BindError`` listing every missing or malformed variable.
        """
        return bind(shape_of(cls), env, cls.naming_policy())

    @classmethod
    def env_keys(cls) -> dict[str, str]:
        """Return ``{dotted field path: environment key}`` for every leaf."""
        keys = check_shape(shape_of(cls), cls.naming_policy())
        return {str(path): key for path, key in keys.items()}
