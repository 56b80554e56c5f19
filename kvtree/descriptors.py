"""
Value descriptors: a type annotation resolved once into a mapping shape.

describe() turns an annotation into one of

    PrimitiveDescriptor    one leaf, parsed/printed by kvtree.primitives
    StructDescriptor       Pydantic model, dataclass or attrs class
    SequenceDescriptor     list[T], tuple[T, ...], Sequence[T]
    MappingDescriptor      dict[K, V], Mapping[K, V] with primitive K
    OptionalDescriptor     T | None
    CustomCodecDescriptor  type with a bulk codec (see kvtree.codecs)
    DynamicDescriptor      Any / object: dispatch on the runtime value
    UnsupportedDescriptor  callables, channel-like objects, unknown types

Descriptors are immutable and cached process-wide. Struct field tables are
resolved lazily on first use, so self-referencing structs describe fine.

Handles Python 3.12+ type aliases (`type X = ...`), Annotated metadata
(IntWidth, FloatWidth, Tag) and NewType.
"""

from __future__ import annotations

import asyncio
import collections.abc
import dataclasses
import enum
import functools
import queue
import threading
import types
import typing
from collections.abc import Callable
from datetime import timedelta
from typing import Annotated, Any, Literal, Union, get_args, get_origin

import attrs
import pydantic

from kvtree import codecs
from kvtree.codecs import Codec
from kvtree.exceptions import CustomCodecError
from kvtree.markers import FloatWidth, IntWidth
from kvtree.primitives import (
    PrimitiveKind,
    format_scalar,
    parse_bool,
    parse_enum,
    parse_float,
    parse_int,
    parse_timedelta,
)
from kvtree.schemas.fields import FieldSpec
from kvtree.tags import find_tag, parse_tag

StructFlavor = Literal['pydantic', 'dataclass', 'attrs']

# ==============================================================================
# Descriptor Variants
# ==============================================================================


@attrs.define(frozen=True)
class PrimitiveDescriptor:
    """A scalar stored as one leaf string."""

    kind: PrimitiveKind
    py_type: type
    int_width: IntWidth | None = None
    float_width: FloatWidth | None = None

    def format(self, value: Any) -> str:
        """Canonical leaf string (TypeError if value doesn't match kind)."""
        return format_scalar(value, self.kind)

    def parse(self, raw: str, path: str) -> Any:
        """Parse a leaf string (ParseError on grammar violations)."""
        match self.kind:
            case 'int':
                return parse_int(raw, path, self.int_width)
            case 'float':
                return parse_float(raw, path, self.float_width)
            case 'bool':
                return parse_bool(raw, path)
            case 'duration':
                return parse_timedelta(raw, path)
            case 'enum':
                return parse_enum(raw, path, self.py_type)
            case _:
                return raw

    def zero(self) -> Any:
        match self.kind:
            case 'int':
                return 0
            case 'float':
                return 0.0
            case 'bool':
                return False
            case 'duration':
                return timedelta(0)
            case 'enum':
                return next(iter(self.py_type))
            case _:
                return ''


@attrs.define(frozen=True)
class StructField:
    """One struct field: its mapping rule, annotation and default."""

    spec: FieldSpec
    annotation: Any
    default_factory: Callable[[], Any] | None = None
    init_name: str | None = None  # Constructor keyword when it differs from the attribute (attrs aliases)
    init: bool = True  # False for fields excluded from __init__

    @property
    def descriptor(self) -> Descriptor:
        return describe(self.annotation)

    def zero(self) -> Any:
        """Declared default when there is one, else the zero value of the type."""
        if self.default_factory is not None:
            return self.default_factory()
        return zero_value(self.descriptor)


@attrs.define(frozen=True)
class StructDescriptor:
    """A struct decomposed field by field."""

    py_type: type
    flavor: StructFlavor
    frozen: bool

    @property
    def fields(self) -> tuple[StructField, ...]:
        return struct_fields(self.py_type, self.flavor)

    def build(self, values: dict[str, Any]) -> Any:
        """
        Construct an instance from attribute values, without validation.

        Args:
            values: Attribute name -> value (every non-skipped field)
        """
        if self.flavor == 'pydantic':
            return self.py_type.model_construct(**values)

        kwargs = {}
        for field in self.fields:
            if field.init and field.spec.logical_name in values:
                kwargs[field.init_name or field.spec.logical_name] = values[field.spec.logical_name]
        return self.py_type(**kwargs)


@attrs.define(frozen=True)
class SequenceDescriptor:
    """Elements stored under '<path>/<index>'."""

    container: type  # list or tuple
    element: Descriptor


@attrs.define(frozen=True)
class MappingDescriptor:
    """Entries stored under '<path>/<key>'."""

    key: PrimitiveDescriptor | DynamicDescriptor
    value: Descriptor


@attrs.define(frozen=True)
class OptionalDescriptor:
    """T | None: None writes nothing and is the zero value."""

    inner: Descriptor


@attrs.define(frozen=True)
class CustomCodecDescriptor:
    """A type stored as one leaf through its own bulk codec."""

    py_type: type
    codec: Codec

    @property
    def kind(self) -> codecs.CodecKind:
        return self.codec.kind

    def marshal(self, value: Any, path: str) -> str:
        try:
            return self.codec.encode(value)
        except Exception as e:
            raise CustomCodecError(path, self.py_type, f'marshal_{self.kind}') from e

    def unmarshal(self, raw: str, path: str) -> Any:
        try:
            return self.codec.decode(self.py_type, raw)
        except Exception as e:
            raise CustomCodecError(path, self.py_type, f'unmarshal_{self.kind}') from e


@attrs.define(frozen=True)
class DynamicDescriptor:
    """Any / object: the runtime value decides the shape."""


@attrs.define(frozen=True)
class UnsupportedDescriptor:
    """A type with no mapping onto the key tree; fails when traversed."""

    py_type: Any
    reason: str


type Descriptor = (
    PrimitiveDescriptor
    | StructDescriptor
    | SequenceDescriptor
    | MappingDescriptor
    | OptionalDescriptor
    | CustomCodecDescriptor
    | DynamicDescriptor
    | UnsupportedDescriptor
)

DYNAMIC = DynamicDescriptor()

# ==============================================================================
# Resolution
# ==============================================================================

_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_CALLABLE_TYPES = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.LambdaType,
    functools.partial,
)
_CHANNEL_TYPES = (queue.Queue, queue.SimpleQueue, asyncio.Queue)
_ITERATOR_TYPES = (collections.abc.Iterator, collections.abc.AsyncIterator)

_cache: dict[Any, Descriptor] = {}
_cache_lock = threading.Lock()
_cache_generation = -1


def describe(annotation: Any) -> Descriptor:
    """
    Resolve a type annotation into its descriptor (cached).

    Args:
        annotation: Any type annotation (class, generic alias, union, Annotated, alias)

    Returns:
        Immutable descriptor for the annotation
    """
    global _cache_generation
    generation = codecs.registry_generation()
    try:
        with _cache_lock:
            if _cache_generation != generation:
                _cache.clear()
                struct_fields.cache_clear()
                _cache_generation = generation
            cached = _cache.get(annotation)
    except TypeError:  # Unhashable annotation metadata
        return _describe(annotation)

    if cached is not None:
        return cached

    descriptor = _describe(annotation)
    with _cache_lock:
        _cache.setdefault(annotation, descriptor)
    return descriptor


def clear_cache() -> None:
    """Drop every cached descriptor and struct field table."""
    with _cache_lock:
        _cache.clear()
        struct_fields.cache_clear()


def unwrap_annotation(annotation: Any) -> tuple[Any, list[Any]]:
    """
    Strip type aliases, NewType and Annotated wrappers.

    Returns:
        (bare annotation, collected Annotated metadata, outermost first)
    """
    metadata: list[Any] = []
    while True:
        if isinstance(annotation, typing.TypeAliasType):
            annotation = annotation.__value__
        elif get_origin(annotation) is Annotated:
            metadata.extend(annotation.__metadata__)
            annotation = annotation.__origin__
        elif isinstance(annotation, typing.NewType):
            annotation = annotation.__supertype__
        else:
            return annotation, metadata


def _describe(annotation: Any) -> Descriptor:
    bare, metadata = unwrap_annotation(annotation)

    if bare is Any or bare is object:
        return DYNAMIC
    if bare is None or bare is types.NoneType:
        return OptionalDescriptor(inner=DYNAMIC)

    origin = get_origin(bare)
    args = get_args(bare)

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        if len(members) == 1 and len(members) < len(args):
            return OptionalDescriptor(inner=describe(members[0]))
        return UnsupportedDescriptor(bare, 'unions other than T | None are ambiguous')

    if origin is Literal:
        literal_types = {type(arg) for arg in args}
        if len(literal_types) == 1:
            return describe(literal_types.pop())
        return UnsupportedDescriptor(bare, 'Literal values must share one type')

    if origin in _SEQUENCE_ORIGINS:
        return SequenceDescriptor(container=list, element=describe(args[0]) if args else DYNAMIC)

    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceDescriptor(container=tuple, element=describe(args[0]))
        return UnsupportedDescriptor(bare, 'only homogeneous tuple[T, ...] is supported')

    if origin in _MAPPING_ORIGINS:
        key = describe(args[0]) if args else DYNAMIC
        if not isinstance(key, (PrimitiveDescriptor, DynamicDescriptor)):
            return UnsupportedDescriptor(bare, 'mapping keys must be primitives')
        return MappingDescriptor(key=key, value=describe(args[1]) if args else DYNAMIC)

    if origin is collections.abc.Callable:
        return UnsupportedDescriptor(bare, 'callables have no stored form')

    if origin is not None:
        return UnsupportedDescriptor(bare, f'generic {getattr(origin, "__name__", origin)} is not supported')

    if not isinstance(bare, type):
        return UnsupportedDescriptor(bare, 'not a type')

    return _describe_class(bare, metadata)


def _describe_class(cls: type, metadata: list[Any]) -> Descriptor:
    codec = codecs.find_codec(cls)
    if codec is not None:
        return CustomCodecDescriptor(py_type=cls, codec=codec)

    if issubclass(cls, enum.Enum):
        if not all(isinstance(member.value, (bool, int, float, str)) for member in cls):
            return UnsupportedDescriptor(cls, 'enum member values must be bool, int, float or str')
        if not len(cls):
            return UnsupportedDescriptor(cls, 'enum has no members')
        return PrimitiveDescriptor(kind='enum', py_type=cls)

    if issubclass(cls, bool):
        return PrimitiveDescriptor(kind='bool', py_type=cls)
    if issubclass(cls, int):
        width = next((item for item in metadata if isinstance(item, IntWidth)), None)
        return PrimitiveDescriptor(kind='int', py_type=cls, int_width=width)
    if issubclass(cls, float):
        width = next((item for item in metadata if isinstance(item, FloatWidth)), None)
        return PrimitiveDescriptor(kind='float', py_type=cls, float_width=width)
    if issubclass(cls, str):
        return PrimitiveDescriptor(kind='str', py_type=cls)
    if issubclass(cls, timedelta):
        return PrimitiveDescriptor(kind='duration', py_type=cls)

    if issubclass(cls, pydantic.BaseModel):
        return StructDescriptor(py_type=cls, flavor='pydantic', frozen=bool(cls.model_config.get('frozen')))
    if dataclasses.is_dataclass(cls):
        return StructDescriptor(py_type=cls, flavor='dataclass', frozen=cls.__dataclass_params__.frozen)
    if attrs.has(cls):
        # attrs installs _frozen_setattrs as __setattr__ on frozen classes
        frozen = getattr(cls.__setattr__, '__name__', '') == '_frozen_setattrs'
        return StructDescriptor(py_type=cls, flavor='attrs', frozen=frozen)

    if issubclass(cls, (list, tuple)):
        return SequenceDescriptor(container=list if issubclass(cls, list) else tuple, element=DYNAMIC)
    if issubclass(cls, dict):
        return MappingDescriptor(key=DYNAMIC, value=DYNAMIC)

    if issubclass(cls, _CALLABLE_TYPES):
        return UnsupportedDescriptor(cls, 'callables have no stored form')
    if issubclass(cls, _CHANNEL_TYPES):
        return UnsupportedDescriptor(cls, 'channel-like objects have no stored form')
    if issubclass(cls, _ITERATOR_TYPES):
        return UnsupportedDescriptor(cls, 'iterators and generators have no stored form')
    if issubclass(cls, (bytes, bytearray)):
        return UnsupportedDescriptor(cls, 'bytes have no text form; register a codec')

    return UnsupportedDescriptor(cls, 'not a primitive, struct, sequence or mapping')


# ==============================================================================
# Struct Fields
# ==============================================================================


@functools.cache
def struct_fields(cls: type, flavor: StructFlavor) -> tuple[StructField, ...]:
    """
    Derive the field table of a struct type in declaration order.

    Tags come from a Tag marker in the field's Annotated type, or (dataclasses
    and attrs) from field metadata under the 'kvtree' key. Fields excluded
    from __init__ are treated as skipped.
    """
    match flavor:
        case 'pydantic':
            return tuple(_pydantic_fields(cls))
        case 'dataclass':
            return tuple(_dataclass_fields(cls))
        case 'attrs':
            return tuple(_attrs_fields(cls))


def _pydantic_fields(cls: type[pydantic.BaseModel]) -> list[StructField]:
    fields = []
    for name, info in cls.model_fields.items():
        annotation = info.annotation
        if info.metadata:
            annotation = Annotated[(annotation, *info.metadata)]

        default_factory = None
        if not info.is_required():
            default_factory = functools.partial(info.get_default, call_default_factory=True)

        fields.append(
            StructField(
                spec=parse_tag(find_tag(info.metadata), name),
                annotation=annotation,
                default_factory=default_factory,
            )
        )
    return fields


def _dataclass_fields(cls: type) -> list[StructField]:
    hints = typing.get_type_hints(cls, include_extras=True)
    fields = []
    for field in dataclasses.fields(cls):
        annotation = hints.get(field.name, field.type)
        _, metadata = unwrap_annotation(annotation)
        spec = parse_tag(find_tag(metadata, field.metadata), field.name)
        if not field.init:
            spec = spec.model_copy(update={'skip': True})

        default_factory = None
        if field.default is not dataclasses.MISSING:
            default_factory = functools.partial(_constant, field.default)
        elif field.default_factory is not dataclasses.MISSING:
            default_factory = field.default_factory

        fields.append(
            StructField(spec=spec, annotation=annotation, default_factory=default_factory, init=field.init)
        )
    return fields


def _attrs_fields(cls: type) -> list[StructField]:
    hints = typing.get_type_hints(cls, include_extras=True)
    fields = []
    for attribute in attrs.fields(cls):
        annotation = hints.get(attribute.name, attribute.type if attribute.type is not None else Any)
        _, metadata = unwrap_annotation(annotation)
        spec = parse_tag(find_tag(metadata, attribute.metadata), attribute.name)
        if not attribute.init:
            spec = spec.model_copy(update={'skip': True})

        default_factory = None
        if isinstance(attribute.default, attrs.Factory):
            if not attribute.default.takes_self:
                default_factory = attribute.default.factory
        elif attribute.default is not attrs.NOTHING:
            default_factory = functools.partial(_constant, attribute.default)

        fields.append(
            StructField(
                spec=spec,
                annotation=annotation,
                default_factory=default_factory,
                init_name=attribute.alias,
                init=attribute.init,
            )
        )
    return fields


def _constant(value: Any) -> Any:
    return value


# ==============================================================================
# Zero Values
# ==============================================================================


def zero_value(descriptor: Descriptor) -> Any:
    """
    Zero value of a descriptor: what a missing, omitted or skipped node decodes to.

    Scalars get 0 / 0.0 / False / '' / timedelta(0) / the first enum member,
    containers are empty, optionals and dynamics are None, custom codec types
    are T() (None when T needs arguments), and structs are built from their
    fields' defaults or zeros.
    """
    match descriptor:
        case PrimitiveDescriptor():
            return descriptor.zero()
        case CustomCodecDescriptor(py_type=py_type):
            try:
                return py_type()
            except TypeError:
                return None
        case StructDescriptor():
            return descriptor.build({field.spec.logical_name: field.zero() for field in descriptor.fields})
        case SequenceDescriptor(container=container):
            return container()
        case MappingDescriptor():
            return {}
        case _:
            return None


def parse_key(descriptor: PrimitiveDescriptor | DynamicDescriptor, segment: str, path: str) -> Any:
    """Parse a mapping key from a path segment (dynamic keys stay strings)."""
    if isinstance(descriptor, PrimitiveDescriptor):
        return descriptor.parse(segment, path)
    return segment


__all__ = [
    'DYNAMIC',
    'CustomCodecDescriptor',
    'Descriptor',
    'DynamicDescriptor',
    'MappingDescriptor',
    'OptionalDescriptor',
    'PrimitiveDescriptor',
    'SequenceDescriptor',
    'StructDescriptor',
    'StructField',
    'UnsupportedDescriptor',
    'clear_cache',
    'describe',
    'parse_key',
    'struct_fields',
    'unwrap_annotation',
    'zero_value',
]
