"""Environment store protocol and its process / in-memory implementations."""

from __future__ import annotations

import os
from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class EnvironmentStore(Protocol):
    """Abstraction over where variable values come from.

    The binder only ever performs point lookups by exact key; it never
    enumerates or mutates the store.
    """

    def get(self, key: str) -> str | None:
        ...


class OsEnvironment:
    """Snapshot of ``os.environ`` taken when the instance is created."""

    def __init__(self) -> None:
        self._values: dict[str, str] = dict(os.environ)

    def get(self, key: str) -> str | None:
        return self._values.get(key)


class MappingEnvironment:
    """Dict-backed environment store for tests.

    >>> env = MappingEnvironment({"APP__DEBUG": "1"})
    >>> env.get("APP__DEBUG")
    '1'
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    # -- Mutation helpers for test setup ------------------------------------

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def unset(self, key: str) -> None:
        self._values.pop(key, None)


def as_environment(env: EnvironmentStore | Mapping[str, str]) -> EnvironmentStore:
    """Wrap a plain mapping so it satisfies ``EnvironmentStore``."""
    if isinstance(env, (OsEnvironment, MappingEnvironment)):
        return env
    if isinstance(env, Mapping):
        return MappingEnvironment(env)
    if isinstance(env, EnvironmentStore):
        return env
    raise TypeError(f"expected an environment store or a mapping, got {type(env).__name__}")
