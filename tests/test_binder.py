"""Tests for _binder.py — bind(), try_bind() and error aggregation."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import pytest
from pydantic import BaseModel

from envbind._binder import BindResult, bind, try_bind
from envbind._environment import MappingEnvironment
from envbind._naming import NamingPolicy
from envbind._shape import FieldDescriptor, RecordShape, shape_from_names, shape_of
from envbind._types import (
    BindError,
    InvalidBooleanError,
    InvalidNumberError,
    InvalidShapeError,
    LeafType,
    MissingVariableError,
    Secret,
    SemanticType,
)

APP = NamingPolicy(prefix="app")


@dataclass
class Server:
    host: str
    port: int
    debug: bool


@dataclass
class Db:
    host: str
    port: int


@dataclass
class WithDb:
    db: Db


@dataclass
class Primary:
    db: Db
    replica: Db


@dataclass
class Limits:
    retries: Optional[int]


class _RecordingEnvironment(MappingEnvironment):
    def __init__(self, values):
        super().__init__(values)
        self.lookups = []

    def get(self, key):
        self.lookups.append(key)
        return super().get(key)


class TestFlatBinding:
    def test_binds_all_fields(self):
        env = {"APP__HOST": "localhost", "APP__PORT": "8080", "APP__DEBUG": "true"}
        assert bind(shape_of(Server), env, APP) == Server("localhost", 8080, True)

    def test_invalid_number_reports_path(self):
        env = {"APP__HOST": "localhost", "APP__PORT": "not-a-number", "APP__DEBUG": "true"}
        with pytest.raises(BindError) as exc_info:
            bind(shape_of(Server), env, APP)

        (error,) = exc_info.value.errors
        assert isinstance(error, InvalidNumberError)
        assert error.raw == "not-a-number"
        assert error.expected.kind is SemanticType.INTEGER
        assert error.path == ("port",)
        assert error.key == "APP__PORT"

    def test_missing_variable(self):
        env = {"APP__HOST": "localhost", "APP__DEBUG": "no"}
        with pytest.raises(BindError) as exc_info:
            bind(shape_of(Server), env, APP)

        (error,) = exc_info.value.errors
        assert isinstance(error, MissingVariableError)
        assert error.key == "APP__PORT"

    def test_default_policy(self):
        env = {"HOST": "h", "PORT": "1", "DEBUG": "0"}
        assert bind(shape_of(Server), env) == Server("h", 1, False)


class TestNestedBinding:
    def test_nested_keys(self):
        env = {"APP__DB__HOST": "db.local", "APP__DB__PORT": "5432"}
        assert bind(shape_of(WithDb), env, APP) == WithDb(Db("db.local", 5432))

    def test_reused_sub_shape_resolves_per_position(self):
        env = {
            "APP__DB__HOST": "a",
            "APP__DB__PORT": "1",
            "APP__REPLICA__HOST": "b",
            "APP__REPLICA__PORT": "2",
        }
        assert bind(shape_of(Primary), env, APP) == Primary(Db("a", 1), Db("b", 2))
        # Standalone use of the sub-shape is unaffected by its nesting elsewhere.
        assert bind(shape_of(Db), {"APP__HOST": "c", "APP__PORT": "3"}, APP) == Db("c", 3)

    def test_pydantic_models(self):
        class DbModel(BaseModel):
            host: str
            port: int = 5432

        class Settings(BaseModel):
            api_key: Secret[str]
            db: DbModel

        result = bind(shape_of(Settings), {"APP__API_KEY": "s3cr3t", "APP__DB__HOST": "h"}, APP)
        assert isinstance(result, Settings)
        assert result.api_key.secret_value == "s3cr3t"
        assert result.db == DbModel(host="h", port=5432)

    def test_dict_shape(self):
        inner = RecordShape("Db", [FieldDescriptor("port", LeafType(SemanticType.INTEGER))])
        shape = RecordShape("Root", [FieldDescriptor("db", inner)])
        assert bind(shape, {"DB__PORT": "1"}) == {"db": {"port": 1}}


class TestCollectAll:
    def test_every_failure_reported_in_declaration_order(self):
        env = {"APP__REPLICA__HOST": "b", "APP__REPLICA__PORT": "x"}
        result = try_bind(shape_of(Primary), env, APP)

        assert not result.ok
        assert result.value is None
        assert [(type(e), e.key) for e in result.errors] == [
            (MissingVariableError, "APP__DB__HOST"),
            (MissingVariableError, "APP__DB__PORT"),
            (InvalidNumberError, "APP__REPLICA__PORT"),
        ]

    def test_bind_error_lists_missing_keys(self):
        with pytest.raises(BindError) as exc_info:
            bind(shape_of(Server), {}, APP)
        assert exc_info.value.missing_keys == ["APP__HOST", "APP__PORT", "APP__DEBUG"]

    def test_mixed_coercion_failures(self):
        env = {"APP__HOST": "h", "APP__PORT": "99999999999999999999", "APP__DEBUG": "maybe"}
        result = try_bind(shape_of(Server), env, APP)
        assert [type(e).__name__ for e in result.errors] == [
            "NumberOverflowError",
            "InvalidBooleanError",
        ]
        assert isinstance(result.errors[1], InvalidBooleanError)


class TestOptionalFields:
    def test_absent_is_none(self):
        assert bind(shape_of(Limits), {}) == Limits(None)

    def test_present_is_value(self):
        assert bind(shape_of(Limits), {"RETRIES": "3"}) == Limits(3)

    def test_malformed_still_fails(self):
        result = try_bind(shape_of(Limits), {"RETRIES": "three"})
        (error,) = result.errors
        assert isinstance(error, InvalidNumberError)


class TestDefaults:
    def test_default_used_when_absent(self):
        @dataclass
        class WithDefault:
            port: int = 8000

        assert bind(shape_of(WithDefault), {}) == WithDefault(8000)

    def test_default_returned_as_is(self):
        shape = RecordShape(
            "Root", [FieldDescriptor("port", LeafType(SemanticType.INTEGER), default="auto")]
        )
        assert bind(shape, {}) == {"port": "auto"}

    def test_present_value_beats_default(self):
        @dataclass
        class WithDefault:
            port: int = 8000

        assert bind(shape_of(WithDefault), {"PORT": "9000"}) == WithDefault(9000)


class TestLookups:
    def test_only_point_lookups_of_computed_keys(self):
        env = _RecordingEnvironment({"APP__DB__HOST": "h", "APP__DB__PORT": "1", "OTHER": "x"})
        bind(shape_of(WithDb), env, APP)
        assert env.lookups == ["APP__DB__HOST", "APP__DB__PORT"]

    def test_deterministic(self):
        env = MappingEnvironment({"APP__HOST": "h", "APP__PORT": "1", "APP__DEBUG": "on"})
        first = bind(shape_of(Server), env, APP)
        second = bind(shape_of(Server), env, APP)
        assert first == second

    def test_invalid_shape_detected_before_lookup(self):
        env = _RecordingEnvironment({})
        shape = RecordShape("Root", [FieldDescriptor("_bad", LeafType(SemanticType.STRING))])
        with pytest.raises(InvalidShapeError):
            try_bind(shape, env)
        assert env.lookups == []

    def test_explicit_keys_from_name_list(self):
        shape = shape_from_names(["DATABASE.HOST", "HAT"])
        record = bind(shape, {"DATABASE.HOST": "host", "HAT": "fedora"})
        assert record.database.host == "host"
        assert record.hat == "fedora"

    def test_logs_keys_not_values(self, caplog):
        env = {"APP__HOST": "h", "APP__PORT": "1", "APP__DEBUG": "super-secret-flag"}
        with caplog.at_level(logging.DEBUG, logger="envbind._binder"):
            try_bind(shape_of(Server), env, APP)
        assert "APP__PORT" in caplog.text
        assert "super-secret-flag" not in caplog.text


class TestBindResult:
    def test_unwrap_ok(self):
        assert BindResult(value=1).unwrap() == 1

    def test_unwrap_error(self):
        with pytest.raises(BindError):
            BindResult(errors=(MissingVariableError("A", path=["a"]),)).unwrap()


class TestNestedDefaults:
    @dataclass
    class WithDefaultDb:
        db: Db = field(default_factory=lambda: Db("default-host", 5432))

    def test_default_used_when_subtree_absent(self):
        assert bind(shape_of(self.WithDefaultDb), {}) == self.WithDefaultDb(Db("default-host", 5432))

    def test_partial_subtree_still_reports_missing(self):
        result = try_bind(shape_of(self.WithDefaultDb), {"DB__HOST": "h"})
        assert [e.key for e in result.errors] == ["DB__PORT"]

    def test_full_subtree_overrides_default(self):
        env = {"DB__HOST": "h", "DB__PORT": "1"}
        assert bind(shape_of(self.WithDefaultDb), env) == self.WithDefaultDb(Db("h", 1))

    def test_pydantic_model_default(self):
        class DbModel(BaseModel):
            host: str
            port: int

        class Settings(BaseModel):
            db: DbModel = DbModel(host="default-host", port=5432)

        assert bind(shape_of(Settings), {}).db == DbModel(host="default-host", port=5432)


class TestDefaultFactories:
    def test_factory_called_on_every_bind(self):
        counter = iter(range(100))

        @dataclass
        class Stamped:
            generation: int = field(default_factory=lambda: next(counter))

        shape = shape_of(Stamped)
        assert bind(shape, {}) == Stamped(0)
        assert bind(shape, {}) == Stamped(1)

    def test_factory_not_called_when_present(self):
        @dataclass
        class Stamped:
            generation: int = field(default_factory=lambda: pytest.fail("factory called"))

        assert bind(shape_of(Stamped), {"GENERATION": "7"}) == Stamped(7)

    def test_nested_factory_called_per_bind(self):
        @dataclass
        class WithDb:
            db: Db = field(default_factory=lambda: Db("h", 1))

        shape = shape_of(WithDb)
        assert bind(shape, {}).db is not bind(shape, {}).db
