"""Test utilities for envbind."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from ._environment import MappingEnvironment
from ._reader import get_environment, set_environment


@contextmanager
def override_environment(values: dict[str, str] | None = None) -> Iterator[MappingEnvironment]:
    """Temporarily replace the module-level environment with a ``MappingEnvironment``.

    Usage::

        with override_environment({"APP__DEBUG": "true"}) as env:
            assert AppSettings.load().debug is True
            env.set("APP__PORT", "9000")  # mutate inside context
    """
    previous = get_environment()
    fake = MappingEnvironment(values)
    set_environment(fake)
    try:
        yield fake
    finally:
        set_environment(previous)
