"""
Metadata model for recordkit.

TypeDescriptor, PropertyMeta and ClassMeta describe the shape of a record
type. They are built once per type by MetaFactory and cached in a MetaCache;
the rest of the engine only ever talks to these objects, never to the class
declaration itself.

Example:
    from recordkit import MetaFactory

    meta = MetaFactory().create(User)
    for prop in meta.visible_properties():
        print(prop.name, prop.type.name, prop.is_required())
"""

import copy
import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type

from .fields import _MISSING

logger = logging.getLogger(__name__)

_SCALARS = frozenset({'string', 'int', 'float', 'bool'})


class TypeDescriptor:
    """Immutable description of one declared type.

    ``name`` is a canonical tag: string, int, float, bool, array, object,
    any, enum, record, datetime, date, time, or the class name for an opaque
    class. ``python_type`` is the resolved runtime class.
    """
    __slots__ = (
        'name', 'is_builtin', 'is_nullable', 'is_array', 'array_item_type',
        'is_enum', 'enum_class', 'is_record', 'is_datetime', 'python_type',
    )

    def __init__(
        self,
        name: str,
        *,
        is_builtin: bool = False,
        is_nullable: bool = False,
        is_array: bool = False,
        array_item_type: Optional["TypeDescriptor"] = None,
        is_enum: bool = False,
        enum_class: Optional[type] = None,
        is_record: bool = False,
        is_datetime: bool = False,
        python_type: Any = None,
    ):
        if is_array and array_item_type is None:
            array_item_type = TypeDescriptor.any()
        object.__setattr__(self, 'name', name)
        object.__setattr__(self, 'is_builtin', is_builtin)
        object.__setattr__(self, 'is_nullable', is_nullable)
        object.__setattr__(self, 'is_array', is_array)
        object.__setattr__(self, 'array_item_type', array_item_type)
        object.__setattr__(self, 'is_enum', is_enum)
        object.__setattr__(self, 'enum_class', enum_class)
        object.__setattr__(self, 'is_record', is_record)
        object.__setattr__(self, 'is_datetime', is_datetime)
        object.__setattr__(self, 'python_type', python_type)

    @classmethod
    def any(cls) -> "TypeDescriptor":
        return cls('any', is_builtin=True, is_nullable=True)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("TypeDescriptor is immutable")

    def _values(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.__slots__)

    def _replace(self, **changes: Any) -> "TypeDescriptor":
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return TypeDescriptor(values.pop('name'), **values)

    def with_nullable(self, nullable: bool = True) -> "TypeDescriptor":
        return self._replace(is_nullable=nullable)

    def is_scalar(self) -> bool:
        return self.name in _SCALARS

    def accepts_null(self) -> bool:
        return self.is_nullable

    def is_typed_array(self) -> bool:
        return self.is_array and self.array_item_type is not None and self.array_item_type.name != 'any'

    def is_array_of_records(self) -> bool:
        return self.is_array and self.array_item_type is not None and self.array_item_type.is_record

    def contains_records(self) -> bool:
        """True for a record type or an array holding records at any depth."""
        if self.is_record:
            return True
        return self.is_array and self.array_item_type is not None and self.array_item_type.contains_records()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeDescriptor):
            return NotImplemented
        return self._values() == other._values()

    def __hash__(self) -> int:
        return hash(self._values())

    def __repr__(self) -> str:
        label = self.name
        if self.is_array:
            label = f"array[{self.array_item_type!r}]"
        if self.is_nullable and self.name != 'any':
            label = f"?{label}"
        return f"TypeDescriptor({label})"


class PropertyMeta:
    """Metadata for one constructible field of a record type."""
    __slots__ = (
        'name', 'type', 'is_readonly', 'has_default', 'default_value',
        'default_factory', 'map_from', 'caster_ref', 'transformer_ref',
        'is_hidden', 'validation_rules', 'pipeline', 'attributes',
        'title', 'description', 'examples',
    )

    def __init__(
        self,
        name: str,
        type: TypeDescriptor,
        *,
        is_readonly: bool = False,
        has_default: bool = False,
        default_value: Any = None,
        default_factory: Optional[Callable[[], Any]] = None,
        map_from: Optional[str] = None,
        caster_ref: Any = None,
        transformer_ref: Any = None,
        is_hidden: bool = False,
        validation_rules: Tuple[Any, ...] = (),
        pipeline: Tuple[Any, ...] = (),
        attributes: Tuple[Any, ...] = (),
        title: Optional[str] = None,
        description: Optional[str] = None,
        examples: Optional[List[Any]] = None,
    ):
        self.name = name
        self.type = type
        self.is_readonly = is_readonly
        self.has_default = has_default
        self.default_value = default_value
        self.default_factory = default_factory
        self.map_from = map_from
        self.caster_ref = caster_ref
        self.transformer_ref = transformer_ref
        self.is_hidden = is_hidden
        self.validation_rules = tuple(validation_rules)
        self.pipeline = tuple(pipeline)
        self.attributes = tuple(attributes)
        self.title = title
        self.description = description
        self.examples = list(examples) if examples else None

    def is_required(self) -> bool:
        return not self.type.is_nullable and not self.has_default

    def can_be_null(self) -> bool:
        return self.type.is_nullable

    def get_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        if not self.has_default:
            raise ValueError(f"Property '{self.name}' has no default")
        if isinstance(self.default_value, (list, dict, set)):
            return copy.deepcopy(self.default_value)
        return self.default_value

    def source_key(self) -> str:
        return self.map_from or self.name

    def get_rule(self, rule_type: type) -> Any:
        for rule in self.validation_rules:
            if isinstance(rule, rule_type):
                return rule
        return None

    def has_rule(self, rule_type: type) -> bool:
        return self.get_rule(rule_type) is not None

    def get_attribute(self, attr_type: type) -> Any:
        for attr in self.attributes:
            if isinstance(attr, attr_type):
                return attr
        return None

    def has_attribute(self, attr_type: type) -> bool:
        return self.get_attribute(attr_type) is not None

    def for_item(self) -> "PropertyMeta":
        """Bare property describing one element of this array field."""
        item_type = self.type.array_item_type or TypeDescriptor.any()
        return PropertyMeta(self.name, item_type, attributes=self.attributes)

    def _signature(self) -> Tuple[Any, ...]:
        return (
            self.name, self.type, self.is_readonly, self.has_default,
            self.map_from, self.is_hidden, self.validation_rules, self.pipeline,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyMeta):
            return NotImplemented
        return self._signature() == other._signature()

    def __hash__(self) -> int:
        return hash((self.name, self.type))

    def __repr__(self) -> str:
        return f"PropertyMeta(name={self.name!r}, type={self.type!r})"


class ClassMeta:
    """Metadata for a record type: its properties in declaration order."""
    __slots__ = ('type_name', 'python_type', 'is_readonly', 'properties', 'constructor_params', 'attributes')

    def __init__(
        self,
        type_name: str,
        python_type: type,
        properties: Dict[str, PropertyMeta],
        constructor_params: List[str],
        is_readonly: bool = False,
        attributes: Optional[Dict[str, Any]] = None,
    ):
        self.type_name = type_name
        self.python_type = python_type
        self.is_readonly = is_readonly
        self.properties = dict(properties)
        self.constructor_params = list(constructor_params)
        self.attributes = dict(attributes or {})

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, name: str) -> Optional[PropertyMeta]:
        return self.properties.get(name)

    def property_names(self) -> List[str]:
        return list(self.properties)

    def property_count(self) -> int:
        return len(self.properties)

    def required_properties(self) -> List[PropertyMeta]:
        return [p for p in self.properties.values() if p.is_required()]

    def optional_properties(self) -> List[PropertyMeta]:
        return [p for p in self.properties.values() if not p.is_required()]

    def hidden_properties(self) -> List[PropertyMeta]:
        return [p for p in self.properties.values() if p.is_hidden]

    def visible_properties(self) -> List[PropertyMeta]:
        return [p for p in self.properties.values() if not p.is_hidden]

    def is_constructor_based(self) -> bool:
        return bool(self.constructor_params)

    def __iter__(self) -> Iterator[PropertyMeta]:
        return iter(self.properties.values())

    def __repr__(self) -> str:
        return f"ClassMeta({self.type_name}, properties={self.property_names()!r})"


class MetaCache:
    """Storage for built ClassMeta objects, keyed by type identity."""

    def get(self, type_ref: type) -> Optional[ClassMeta]:
        raise NotImplementedError

    def set(self, type_ref: type, meta: ClassMeta) -> ClassMeta:
        raise NotImplementedError

    def has(self, type_ref: type) -> bool:
        return self.get(type_ref) is not None

    def clear(self) -> None:
        raise NotImplementedError


class MemoryMetaCache(MetaCache):
    """In-process cache; entries live until clear() is called.

    set() is write-once: when two threads build the same type concurrently
    the first stored ClassMeta wins and is returned to both.
    """

    def __init__(self) -> None:
        self._entries: Dict[type, ClassMeta] = {}
        self._lock = threading.Lock()

    def get(self, type_ref: type) -> Optional[ClassMeta]:
        return self._entries.get(type_ref)

    def set(self, type_ref: type, meta: ClassMeta) -> ClassMeta:
        with self._lock:
            return self._entries.setdefault(type_ref, meta)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug("Cleared %d cached ClassMeta entries", count)

    def count(self) -> int:
        return len(self._entries)

    def cached_types(self) -> List[Type[Any]]:
        return list(self._entries)


__all__ = [
    "TypeDescriptor",
    "PropertyMeta",
    "ClassMeta",
    "MetaCache",
    "MemoryMetaCache",
]
