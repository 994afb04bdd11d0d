"""
MetaFactory: builds ClassMeta for a record type by introspection.

Fields are read from the type's annotations (``get_type_hints`` with
``include_extras=True``) in declaration order. Field-level metadata is
collected from ``Annotated[...]`` extras and class-level ``Field(...)``
assignments.

Example:
    from typing import Annotated, List, Optional
    from recordkit import MetaFactory, Record, Field, Required

    class Post(Record):
        title: Annotated[str, Required()]
        tags: List[str] = Field(default_factory=list)
        summary: Optional[str] = None

    meta = MetaFactory().create(Post)
    assert meta.property_names() == ["title", "tags", "summary"]
    assert MetaFactory().create(Post) is not meta   # separate caches
"""

import collections.abc
import dataclasses
import datetime
import inspect
import logging
import types
from enum import Enum
import typing
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union, get_type_hints

import typing_extensions
from typing_extensions import Annotated, get_args, get_origin

from .config import get_config_value
from .constraints import PipelineStep, Rule
from .exceptions import MetadataError
from .fields import FieldInfo, _MISSING
from .meta import ClassMeta, MemoryMetaCache, MetaCache, PropertyMeta, TypeDescriptor

logger = logging.getLogger(__name__)

_UNION_TYPES: Tuple[Any, ...] = (Union,)
if hasattr(types, 'UnionType'):
    _UNION_TYPES = (Union, types.UnionType)

_SCALAR_NAMES = {str: 'string', int: 'int', float: 'float', bool: 'bool'}

_ARRAY_ORIGINS = (
    list, tuple, set, frozenset,
    collections.abc.Sequence, collections.abc.MutableSequence,
    collections.abc.Set, collections.abc.MutableSet,
    collections.abc.Iterable, collections.abc.Collection,
)

_OBJECT_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

_LITERALS = (typing.Literal, typing_extensions.Literal)

_RESERVED_NAMES = frozenset({'record_config'})


def is_record_type(typ: Any) -> bool:
    """Check if a type is hydrated as a nested record (Record subclass or dataclass)."""
    if not isinstance(typ, type):
        return False
    return bool(getattr(typ, '__recordkit_record__', False)) or dataclasses.is_dataclass(typ)


def _unwrap_annotated(annotation: Any) -> Tuple[Any, List[Any]]:
    """Strip Annotated layers, returning the base type and all extras in order."""
    extras: List[Any] = []
    while get_origin(annotation) is Annotated:
        args = get_args(annotation)
        annotation = args[0]
        extras.extend(args[1:])
    return annotation, extras


def _is_classvar(annotation: Any) -> bool:
    return annotation is ClassVar or get_origin(annotation) is ClassVar


class _Unsupported(Exception):
    pass


def describe_type(annotation: Any) -> TypeDescriptor:
    """Resolve a type annotation to a TypeDescriptor.

    Raises MetadataError for annotations with no supported shape.
    """
    try:
        return _describe(annotation)
    except _Unsupported:
        raise MetadataError(f"Unsupported type {annotation!r}") from None


def _describe(annotation: Any) -> TypeDescriptor:
    annotation, _ = _unwrap_annotated(annotation)

    if annotation is Any or annotation is object:
        return TypeDescriptor.any()

    origin = get_origin(annotation)

    if origin in _UNION_TYPES:
        args = get_args(annotation)
        members = [a for a in args if a is not type(None)]
        if len(members) != 1 or len(members) == len(args):
            raise _Unsupported()
        return _describe(members[0]).with_nullable()

    if origin in _LITERALS or annotation is type(None):
        raise _Unsupported()

    if annotation in _ARRAY_ORIGINS or origin in _ARRAY_ORIGINS:
        args = get_args(annotation)
        if origin is tuple and args:
            if len(args) != 2 or args[1] is not Ellipsis:
                raise _Unsupported()
            args = args[:1]
        item = _describe(args[0]) if args else TypeDescriptor.any()
        python_type = origin or annotation
        if not isinstance(python_type, type) or python_type.__module__ == 'collections.abc':
            python_type = list
        return TypeDescriptor('array', is_builtin=True, is_array=True, array_item_type=item, python_type=python_type)

    if annotation in _OBJECT_ORIGINS or origin in _OBJECT_ORIGINS:
        return TypeDescriptor('object', is_builtin=True, python_type=dict)

    if origin is not None or not isinstance(annotation, type):
        raise _Unsupported()

    if annotation in _SCALAR_NAMES:
        return TypeDescriptor(_SCALAR_NAMES[annotation], is_builtin=True, python_type=annotation)

    if issubclass(annotation, Enum):
        return TypeDescriptor('enum', is_enum=True, enum_class=annotation, python_type=annotation)

    if issubclass(annotation, datetime.datetime):
        return TypeDescriptor('datetime', is_datetime=True, python_type=annotation)
    if issubclass(annotation, datetime.date):
        return TypeDescriptor('date', is_datetime=True, python_type=annotation)
    if issubclass(annotation, datetime.time):
        return TypeDescriptor('time', is_datetime=True, python_type=annotation)

    if is_record_type(annotation):
        return TypeDescriptor('record', is_record=True, python_type=annotation)

    return TypeDescriptor(annotation.__name__, python_type=annotation)


def _constructor_names(type_ref: type) -> Optional[List[str]]:
    """Keyword parameters of ``__init__``; None when every field is accepted."""
    init = type_ref.__init__
    if init is object.__init__:
        return []
    try:
        signature = inspect.signature(init)
    except (TypeError, ValueError):
        return None
    names: List[str] = []
    for index, param in enumerate(signature.parameters.values()):
        if index == 0:
            continue  # self
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            return None
        if param.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
            names.append(param.name)
    return names


def _init_defaults(type_ref: type) -> Dict[str, Any]:
    if type_ref.__init__ is object.__init__:
        return {}
    try:
        signature = inspect.signature(type_ref.__init__)
    except (TypeError, ValueError):
        return {}
    return {
        name: param.default
        for name, param in signature.parameters.items()
        if param.default is not inspect.Parameter.empty
    }


class MetaFactory:
    """Builds and memoizes ClassMeta per type.

    The cache is owned by the factory; pass a shared MetaCache to let
    several factories (or engines) reuse the same metadata.
    """

    def __init__(self, cache: Optional[MetaCache] = None):
        self.cache = cache if cache is not None else MemoryMetaCache()

    def create(self, type_ref: type) -> ClassMeta:
        cached = self.cache.get(type_ref)
        if cached is not None:
            return cached
        meta = self._build(type_ref)
        logger.debug("Built metadata for %s with %d properties", meta.type_name, meta.property_count())
        return self.cache.set(type_ref, meta)

    def clear_cache(self) -> None:
        self.cache.clear()

    def _build(self, type_ref: type) -> ClassMeta:
        if not isinstance(type_ref, type):
            raise MetadataError(f"Cannot build metadata for {type_ref!r}: not a class")

        type_name = type_ref.__name__
        try:
            hints = get_type_hints(type_ref, include_extras=True)
        except (NameError, TypeError) as e:
            raise MetadataError(f"Cannot resolve annotations of {type_name}: {e}") from e

        config = getattr(type_ref, 'record_config', None) or {}
        class_frozen = bool(get_config_value(config, 'frozen', False))
        if dataclasses.is_dataclass(type_ref):
            class_frozen = class_frozen or type_ref.__dataclass_params__.frozen

        ctor_names = _constructor_names(type_ref)
        defaults = self._collect_defaults(type_ref)

        properties: Dict[str, PropertyMeta] = {}
        for name, annotation in hints.items():
            if name.startswith('_') or name in _RESERVED_NAMES or _is_classvar(annotation):
                continue
            if ctor_names and name not in ctor_names:
                continue
            properties[name] = self._build_property(
                type_ref, name, annotation, defaults, class_frozen,
            )

        if ctor_names is None:
            constructor_params = list(properties)
        elif ctor_names:
            constructor_params = [n for n in ctor_names if n in properties]
        else:
            constructor_params = []

        return ClassMeta(
            type_name=type_name,
            python_type=type_ref,
            properties=properties,
            constructor_params=constructor_params,
            is_readonly=class_frozen,
            attributes=dict(config),
        )

    def _collect_defaults(self, type_ref: type) -> Dict[str, Tuple[Any, Any]]:
        """Map field name -> (default value, default factory) from non-Field sources."""
        found: Dict[str, Tuple[Any, Any]] = {}
        for name, default in _init_defaults(type_ref).items():
            found[name] = (default, None)
        for klass in reversed(type_ref.__mro__):
            for name, value in vars(klass).items():
                if name.startswith('_') or isinstance(value, (types.MemberDescriptorType, FieldInfo)):
                    continue
                if callable(value) or isinstance(value, (property, classmethod, staticmethod)):
                    continue
                found[name] = (value, None)
        if dataclasses.is_dataclass(type_ref):
            for f in dataclasses.fields(type_ref):
                if f.default_factory is not dataclasses.MISSING:
                    found[f.name] = (_MISSING, f.default_factory)
                elif f.default is not dataclasses.MISSING:
                    found[f.name] = (f.default, None)
        return found

    def _build_property(
        self,
        type_ref: type,
        name: str,
        annotation: Any,
        defaults: Dict[str, Tuple[Any, Any]],
        class_frozen: bool,
    ) -> PropertyMeta:
        base, extras = _unwrap_annotated(annotation)
        # Optional[Annotated[T, ...]] carries extras inside the union
        if get_origin(base) in _UNION_TYPES:
            for arg in get_args(base):
                _, inner = _unwrap_annotated(arg)
                extras.extend(inner)

        try:
            descriptor = _describe(annotation)
        except _Unsupported:
            raise MetadataError.unsupported_type(type_ref.__name__, name, annotation) from None

        field_info: Optional[FieldInfo] = None
        for extra in extras:
            if isinstance(extra, FieldInfo):
                field_info = extra
        class_value = None
        for klass in type_ref.__mro__:
            if name in vars(klass):
                class_value = vars(klass)[name]
                break
        if field_info is None and isinstance(class_value, FieldInfo):
            field_info = class_value

        has_default = False
        default_value: Any = None
        default_factory = None
        if field_info is not None and field_info.has_default:
            has_default = True
            default_value = None if field_info.default is _MISSING else field_info.default
            default_factory = field_info.default_factory
        elif name in defaults:
            has_default = True
            value, factory = defaults[name]
            default_value = None if value is _MISSING else value
            default_factory = factory

        rules = tuple(e for e in extras if isinstance(e, Rule))
        pipeline = tuple(e for e in extras if isinstance(e, PipelineStep))

        return PropertyMeta(
            name,
            descriptor,
            is_readonly=class_frozen or bool(field_info and field_info.frozen),
            has_default=has_default,
            default_value=default_value,
            default_factory=default_factory,
            map_from=field_info.map_from if field_info else None,
            caster_ref=_instantiate(field_info.cast_with) if field_info else None,
            transformer_ref=_instantiate(field_info.transform_with) if field_info else None,
            is_hidden=bool(field_info and field_info.hidden),
            validation_rules=rules,
            pipeline=pipeline,
            attributes=tuple(extras),
            title=field_info.title if field_info else None,
            description=field_info.description if field_info else None,
            examples=field_info.examples if field_info else None,
        )


def _instantiate(ref: Any) -> Any:
    if isinstance(ref, type):
        return ref()
    return ref


__all__ = ["MetaFactory", "describe_type", "is_record_type"]
