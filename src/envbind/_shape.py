"""Record shapes: the field tree the binder walks.

A shape is either built explicitly::

    shape = RecordShape(
        "Server",
        [
            FieldDescriptor("host", LeafType(SemanticType.STRING)),
            FieldDescriptor("port", LeafType(SemanticType.INTEGER)),
        ],
    )

or reflected once per class from a pydantic model or a dataclass with
:func:`shape_of`.
"""

from __future__ import annotations

import dataclasses
import keyword
import types
import typing
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Iterator, Sequence, Union, get_args, get_origin

from pydantic import BaseModel

from ._naming import NamingPolicy, resolve
from ._types import (
    UNDEFINED,
    FieldPath,
    InvalidShapeError,
    LeafType,
    Secret,
    SemanticType,
    _Undefined,
)

# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldDescriptor:
    """Metadata for one field of a record.

    Attributes:
        name: Segment name; also the keyword the record factory receives.
        kind: ``LeafType`` for scalar fields, ``RecordShape`` for nested records.
        default: Value used when the variable is absent (returned as-is).
        env: Explicit environment key; bypasses name resolution.
        default_factory: Called on every bind for a fresh default; wins over
            ``default``.
    """

    name: str
    kind: LeafType | RecordShape
    default: Any = UNDEFINED
    env: str | None = None
    default_factory: Callable[[], Any] | None = None

    @property
    def has_default(self) -> bool:
        return self.default_factory is not None or not isinstance(self.default, _Undefined)

    def make_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


def _as_dict(values: dict[str, Any]) -> dict[str, Any]:
    return values


@dataclass(frozen=True)
class RecordShape:
    """Static description of a record: its fields and how to build it.

    ``factory`` receives a ``{field name: value}`` dict and returns the record.
    It defaults to returning the dict itself.
    """

    name: str
    fields: tuple[FieldDescriptor, ...]
    factory: Callable[[dict[str, Any]], Any] = field(default=_as_dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: set[str] = set()
        for descriptor in self.fields:
            if not descriptor.name:
                raise InvalidShapeError(f"{self.name}: field names must be non-empty")
            if descriptor.name in seen:
                raise InvalidShapeError(f"{self.name}: duplicate field {descriptor.name!r}")
            seen.add(descriptor.name)

    def leaves(self, path: FieldPath = FieldPath()) -> Iterator[tuple[FieldPath, FieldDescriptor]]:
        """Yield ``(path, descriptor)`` for every leaf, depth-first in declaration order."""
        for descriptor in self.fields:
            child = path.child(descriptor.name)
            if isinstance(descriptor.kind, RecordShape):
                yield from descriptor.kind.leaves(child)
            else:
                yield child, descriptor


def key_for(path: FieldPath, descriptor: FieldDescriptor, policy: NamingPolicy) -> str:
    if descriptor.env is not None:
        return descriptor.env
    return resolve(path, policy)


def check_shape(shape: RecordShape, policy: NamingPolicy) -> dict[FieldPath, str]:
    """Validate *shape* against *policy* and return the key of every leaf.

    Raises ``InvalidShapeError`` for malformed segments or when two leaves
    resolve to the same environment variable.
    """
    keys: dict[FieldPath, str] = {}
    owners: dict[str, FieldPath] = {}
    for path, descriptor in shape.leaves():
        key = key_for(path, descriptor, policy)
        if key in owners:
            raise InvalidShapeError(
                f"{shape.name}: fields '{owners[key]}' and '{path}' both resolve to {key!r}"
            )
        owners[key] = path
        keys[path] = key
    return keys


# ---------------------------------------------------------------------------
# Annotation mapping
# ---------------------------------------------------------------------------

_SCALARS: dict[Any, SemanticType] = {
    str: SemanticType.STRING,
    bool: SemanticType.BOOLEAN,
    int: SemanticType.INTEGER,
    float: SemanticType.FLOAT,
}


def _strip_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1 and len(get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


def leaf_type_for(annotation: Any) -> LeafType:
    """Map a Python annotation (``int``, ``Optional[bool]``, ``Secret[str]``...) to a LeafType."""
    inner, optional = _strip_optional(annotation)
    secret = False
    if inner is Secret or get_origin(inner) is Secret:
        args = get_args(inner)
        inner = args[0] if args else str
        secret = True
    kind = _SCALARS.get(inner)
    if kind is None:
        raise InvalidShapeError(f"unsupported field type {annotation!r}")
    return LeafType(kind, optional=optional, secret=secret)


def _is_record_type(annotation: Any) -> bool:
    if not isinstance(annotation, type):
        return False
    return issubclass(annotation, BaseModel) or dataclasses.is_dataclass(annotation)


def _kind_for(owner: type, name: str, annotation: Any) -> LeafType | RecordShape:
    if _is_record_type(annotation):
        return shape_of(annotation)
    inner, optional = _strip_optional(annotation)
    if optional and _is_record_type(inner):
        raise InvalidShapeError(
            f"{owner.__name__}.{name}: optional nested records are not supported"
        )
    try:
        return leaf_type_for(annotation)
    except InvalidShapeError as exc:
        raise InvalidShapeError(f"{owner.__name__}.{name}: {exc}") from None


# ---------------------------------------------------------------------------
# Reflection
# ---------------------------------------------------------------------------


def _model_fields(cls: type[BaseModel]) -> list[FieldDescriptor]:
    descriptors = []
    for name, info in cls.model_fields.items():
        default = UNDEFINED
        if not info.is_required() and info.default_factory is None:
            default = info.default
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        descriptors.append(
            FieldDescriptor(
                name,
                _kind_for(cls, name, info.annotation),
                default=default,
                env=extra.get("env"),
                default_factory=info.default_factory,
            )
        )
    return descriptors


def _dataclass_fields(cls: type) -> list[FieldDescriptor]:
    hints = typing.get_type_hints(cls)
    descriptors = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        default = UNDEFINED
        if f.default is not dataclasses.MISSING:
            default = f.default
        factory = None
        if f.default_factory is not dataclasses.MISSING:
            factory = f.default_factory
        descriptors.append(
            FieldDescriptor(
                f.name,
                _kind_for(cls, f.name, hints[f.name]),
                default=default,
                env=f.metadata.get("env"),
                default_factory=factory,
            )
        )
    return descriptors


@lru_cache(maxsize=None)
def shape_of(cls: type) -> RecordShape:
    """Reflect a pydantic model or dataclass into a cached ``RecordShape``."""
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        return RecordShape(
            cls.__name__,
            _model_fields(cls),
            lambda values: cls.model_validate(values, by_name=True),
        )
    if isinstance(cls, type) and dataclasses.is_dataclass(cls):
        return RecordShape(cls.__name__, _dataclass_fields(cls), lambda values: cls(**values))
    raise InvalidShapeError(f"{cls!r} is not a pydantic model or a dataclass")


# ---------------------------------------------------------------------------
# Shapes from variable-name lists
# ---------------------------------------------------------------------------

_STRING = LeafType(SemanticType.STRING)


def _field_name(component: str) -> str:
    return component.lower().replace("-", "_")


def _class_name(component: str) -> str:
    return "".join(word[:1].upper() + word[1:].lower() for word in component.split("_"))


def shape_from_names(names: Sequence[str], root_name: str = "Vars") -> RecordShape:
    """Build a string-only shape from dotted variable names.

    Periods mark nesting; each leaf reads the variable named exactly as given.
    Records are generated frozen dataclasses, named after their path
    (``Vars``, ``VarsDatabase``, ``VarsCacheRedis``...).

    >>> shape = shape_from_names(["DATABASE.HOST", "HAT"])
    >>> [d.name for d in shape.fields]
    ['database', 'hat']
    """
    tree: dict[str, Any] = {}
    for name in names:
        components = name.split(".")
        if any(not c for c in components):
            raise InvalidShapeError(f"variable name {name!r} has an empty component")
        node = tree
        for component in components[:-1]:
            child = node.setdefault(_field_name(component), {})
            if isinstance(child, str):
                raise InvalidShapeError(f"{name!r} nests under the variable {child!r}")
            node = child
        leaf = _field_name(components[-1])
        if leaf in node:
            raise InvalidShapeError(f"{name!r} conflicts with another variable name")
        node[leaf] = name
    return _build_named_record(tree, root_name)[0]


def _build_named_record(tree: dict[str, Any], class_name: str) -> tuple[RecordShape, type]:
    descriptors = []
    annotations = []
    for field_name, node in tree.items():
        if not field_name.isidentifier() or keyword.iskeyword(field_name):
            raise InvalidShapeError(f"{field_name!r} is not a valid field name")
        if isinstance(node, str):
            descriptors.append(FieldDescriptor(field_name, _STRING, env=node))
            annotations.append((field_name, str))
        else:
            child_shape, child_cls = _build_named_record(node, class_name + _class_name(field_name))
            descriptors.append(FieldDescriptor(field_name, child_shape))
            annotations.append((field_name, child_cls))

    record_cls = dataclasses.make_dataclass(class_name, annotations, frozen=True)
    shape = RecordShape(class_name, descriptors, lambda values: record_cls(**values))
    return shape, record_cls
