"""``envbind`` command group: inspect and check settings classes."""

from __future__ import annotations

import importlib
import os
import sys

import click

from .._binder import try_bind
from .._environment import OsEnvironment
from .._naming import DEFAULT_POLICY, NamingPolicy
from .._settings import EnvSettings
from .._shape import RecordShape, check_shape, shape_of
from .._types import ConfigError


def load_target(target: str) -> type:
    """Import ``"package.module:ClassName"`` and return the class."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected MODULE:CLASS, got {target!r}", param_hint="TARGET")
    # Console scripts do not put the working directory on sys.path.
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name!r}: {e}", param_hint="TARGET")
    obj = module
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise click.BadParameter(
                f"{module_name!r} has no attribute {attr!r}", param_hint="TARGET"
            ) from None
    return obj


def policy_for(cls: type, prefix: str | None, separator: str | None) -> NamingPolicy:
    """Start from the class's own policy and apply command-line overrides."""
    base = cls.naming_policy() if issubclass(cls, EnvSettings) else DEFAULT_POLICY
    return NamingPolicy(
        prefix=base.prefix if prefix is None else prefix,
        separator=base.separator if separator is None else separator,
        casing=base.casing,
        empty_segments=base.empty_segments,
    )


def _prepare(target: str, prefix: str | None, separator: str | None) -> tuple[RecordShape, NamingPolicy]:
    cls = load_target(target)
    try:
        shape = shape_of(cls)
        policy = policy_for(cls, prefix, separator)
    except (ConfigError, ValueError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)
    return shape, policy


@click.group("envbind")
def envbind_group():
    """Bind typed settings classes to environment variables."""
    pass


@envbind_group.command("keys")
@click.argument("target")
@click.option("--prefix", default=None, help="Override the key prefix (e.g. APP).")
@click.option("--separator", default=None, help="Override the segment separator.")
def keys_cli(target: str, prefix: str | None, separator: str | None) -> None:
    """List the environment variables TARGET reads.

    Examples:\n
        envbind keys myapp.settings:AppSettings\n
        envbind keys myapp.settings:AppSettings --prefix MYAPP\n
    """
    shape, policy = _prepare(target, prefix, separator)
    try:
        keys = check_shape(shape, policy)
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    leaves = dict(shape.leaves())
    for path, key in keys.items():
        click.echo(f"{key}\t{leaves[path].kind}")


@envbind_group.command("check")
@click.argument("target")
@click.option("--prefix", default=None, help="Override the key prefix (e.g. APP).")
@click.option("--separator", default=None, help="Override the segment separator.")
def check_cli(target: str, prefix: str | None, separator: str | None) -> None:
    """Bind TARGET against the current environment and report every problem."""
    shape, policy = _prepare(target, prefix, separator)
    try:
        result = try_bind(shape, OsEnvironment(), policy)
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    if result.ok:
        click.secho("OK", fg="green")
        return

    for error in result.errors:
        click.secho(str(error), fg="red", err=True)
    sys.exit(1)