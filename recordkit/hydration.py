"""
Hydration: turning mapped input into record instances.

Input normalizers first reduce the raw source (mapping, JSON text, or an
arbitrary object) to a plain mapping. The Hydrator then resolves each
property in declaration order: absent values get their default, present
values run through the property's pipeline steps and are cast. Nested
records and lists of records are hydrated recursively with the field name
and element index prepended to any error path.

All failures of one record are collected before raising: structural
failures (missing keys, cast errors) raise a single HydrationError, rule
violations alone raise a single ValidationError.

Example:
    from recordkit import EngineFactory

    engine = EngineFactory().create()
    order = engine.hydrate(Order, '{"id": 7, "items": [{"title": "Pen"}]}')
"""

import codecs
import json
import logging
import types
from typing import Any, Dict, List, Mapping, Optional

from .casting import CasterRegistry
from .context import Context
from .exceptions import CastError, HydrationError, MappingError, RecordError, RuleViolation, ValidationError
from .factory import MetaFactory, is_record_type
from .mapping import Mapper
from .meta import ClassMeta, PropertyMeta
from .validation import ValidationContext, ValidatorRegistry

logger = logging.getLogger(__name__)


# --- Input normalizers ---

class InputNormalizer:
    """Reduces one shape of raw input to a plain mapping."""

    def supports(self, source: Any) -> bool:
        raise NotImplementedError

    def normalize(self, source: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MappingInputNormalizer(InputNormalizer):

    def supports(self, source: Any) -> bool:
        return isinstance(source, Mapping)

    def normalize(self, source: Any) -> Dict[str, Any]:
        return dict(source)


class JsonInputNormalizer(InputNormalizer):
    """JSON text whose first non-blank character opens an object or array."""

    def supports(self, source: Any) -> bool:
        if isinstance(source, (bytes, bytearray)):
            head = bytes(source[:64])
            if head.startswith(codecs.BOM_UTF8):
                head = head[len(codecs.BOM_UTF8):]
            head = head.lstrip()[:1]
            return head in (b'{', b'[')
        if isinstance(source, str):
            return source.lstrip()[:1] in ('{', '[')
        return False

    def normalize(self, source: Any) -> Dict[str, Any]:
        try:
            data = json.loads(source)
        except (ValueError, UnicodeDecodeError) as e:
            raise HydrationError(f"Invalid JSON input: {e}") from e
        if not isinstance(data, dict):
            raise HydrationError(f"JSON input must decode to an object, got {type(data).__name__}")
        return data


class ObjectInputNormalizer(InputNormalizer):
    """Public attributes of an arbitrary object.

    Record instances and dataclasses contribute their declared fields;
    other objects their ``__dict__`` and ``__slots__`` entries.
    """

    def __init__(self, meta_factory: Optional[MetaFactory] = None):
        self.meta_factory = meta_factory

    def supports(self, source: Any) -> bool:
        if source is None or isinstance(source, (str, bytes, bytearray, int, float, bool, list, tuple, set)):
            return False
        if isinstance(source, (type, types.ModuleType)) or callable(source):
            return False
        return hasattr(source, '__dict__') or hasattr(type(source), '__slots__')

    def normalize(self, source: Any) -> Dict[str, Any]:
        if self.meta_factory is not None and is_record_type(type(source)):
            meta = self.meta_factory.create(type(source))
            return {name: getattr(source, name) for name in meta.properties if hasattr(source, name)}
        data: Dict[str, Any] = {}
        for klass in reversed(type(source).__mro__):
            for slot in getattr(klass, '__slots__', ()):
                if isinstance(slot, str) and not slot.startswith('_') and hasattr(source, slot):
                    data[slot] = getattr(source, slot)
        for name, value in getattr(source, '__dict__', {}).items():
            if not name.startswith('_'):
                data[name] = value
        return data


# --- Hydrator ---

def _only_cast_errors(error: RecordError) -> bool:
    if isinstance(error, CastError):
        return True
    if isinstance(error, HydrationError) and error.errors:
        return all(_only_cast_errors(e) for e in error.errors)
    return False


class Hydrator:
    """Resolves, casts, validates and constructs records from mapped data."""

    def __init__(
        self,
        mapper: Mapper,
        caster_registry: CasterRegistry,
        meta_factory: MetaFactory,
        validator_registry: Optional[ValidatorRegistry] = None,
    ):
        self.mapper = mapper
        self.caster_registry = caster_registry
        self.meta_factory = meta_factory
        self.validator_registry = validator_registry

    def hydrate_source(
        self,
        class_meta: ClassMeta,
        source: Mapping[str, Any],
        context: Optional[Context] = None,
    ) -> Any:
        """Map then hydrate a plain mapping."""
        mapped = self.mapper.map(source, class_meta, context)
        return self.hydrate(class_meta, mapped, context)

    def hydrate(
        self,
        class_meta: ClassMeta,
        mapped_data: Mapping[str, Any],
        context: Optional[Context] = None,
    ) -> Any:
        errors: List[RecordError] = []
        violations: List[RuleViolation] = []
        values: Dict[str, Any] = {}

        for name, prop in class_meta.properties.items():
            try:
                values[name] = self._resolve(prop, mapped_data, context)
            except ValidationError as e:
                violations.extend(v.prepend_path(name) for v in e.violations)
            except HydrationError as e:
                errors.extend(self._flatten(e, name))
            except RecordError as e:
                errors.append(e.prepend_path(name))

        if self.validator_registry is not None and (context is None or context.validate):
            vctx = ValidationContext(None, mapped_data, context, self.validator_registry, self.meta_factory)
            for name, prop in class_meta.properties.items():
                if name not in values:
                    continue
                for violation in self.validator_registry.collect(prop, values[name], vctx):
                    violations.append(violation.prepend_path(name))

        if errors:
            if violations:
                errors.append(ValidationError.from_violations(violations))
            raise HydrationError.from_errors(f"Failed to hydrate {class_meta.type_name}", errors)
        if violations:
            raise ValidationError.from_violations(violations)

        return self._construct(class_meta, values)

    def _flatten(self, error: HydrationError, name: str) -> List[RecordError]:
        if not error.errors:
            return [error.prepend_path(name)]
        return [e.prepend_path(name) for e in error.errors]

    def _construct(self, class_meta: ClassMeta, values: Dict[str, Any]) -> Any:
        cls = class_meta.python_type
        kwargs = {name: values[name] for name in class_meta.constructor_params if name in values}
        instance = cls(**kwargs)
        for name, value in values.items():
            if name not in kwargs:
                setattr(instance, name, value)
        return instance

    def _resolve(self, prop: PropertyMeta, mapped_data: Mapping[str, Any], context: Optional[Context]) -> Any:
        if prop.name not in mapped_data:
            if prop.has_default:
                return prop.get_default()
            if prop.type.is_nullable:
                return None
            raise MappingError.missing_required_key(prop.source_key())

        value = mapped_data[prop.name]
        for step in prop.pipeline:
            value = step.process(value, prop, context)

        try:
            return self.cast_value(prop, value, context)
        except (CastError, HydrationError) as e:
            if context is not None and context.is_permissive and prop.type.is_nullable and _only_cast_errors(e):
                return None
            raise

    def cast_value(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        """Cast one value to the property's type, recursing into records."""
        descriptor = prop.type
        if value is None:
            if descriptor.accepts_null():
                return None
            raise CastError.cannot_cast(value, descriptor.name)

        if prop.caster_ref is not None:
            return prop.caster_ref.cast(prop, value, context)

        if descriptor.is_record:
            return self._hydrate_nested(descriptor.python_type, value, context)

        if descriptor.is_array and descriptor.contains_records():
            return self._hydrate_nested_list(prop, value, context)

        caster = self.caster_registry.get(prop, value)
        if caster is not None:
            return caster.cast(prop, value, context)

        if self._is_compatible(prop, value):
            return value
        raise CastError.no_caster_found(value, descriptor.name)

    def _is_compatible(self, prop: PropertyMeta, value: Any) -> bool:
        descriptor = prop.type
        if descriptor.name == 'any':
            return True
        if descriptor.is_array:
            return isinstance(value, (list, tuple, set, frozenset))
        if descriptor.name == 'object' and descriptor.is_builtin:
            return isinstance(value, Mapping)
        python_type = descriptor.python_type
        return isinstance(python_type, type) and isinstance(value, python_type)

    def _hydrate_nested(self, record_type: type, value: Any, context: Optional[Context]) -> Any:
        if isinstance(value, record_type):
            return value
        if not isinstance(value, Mapping):
            raise CastError.cannot_cast(value, record_type.__name__)
        meta = self.meta_factory.create(record_type)
        return self.hydrate_source(meta, value, context)

    def _hydrate_nested_list(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        if not isinstance(value, (list, tuple)):
            raise CastError.cannot_cast(value, 'array')
        item_prop = prop.for_item()
        errors: List[RecordError] = []
        violations: List[RuleViolation] = []
        items: List[Any] = []
        for index, item in enumerate(value):
            segment = str(index)
            try:
                items.append(self.cast_value(item_prop, item, context))
            except ValidationError as e:
                violations.extend(v.prepend_path(segment) for v in e.violations)
            except HydrationError as e:
                errors.extend(self._flatten(e, segment))
            except RecordError as e:
                errors.append(e.prepend_path(segment))
        if errors:
            if violations:
                errors.append(ValidationError.from_violations(violations))
            raise HydrationError.from_errors(f"Failed to hydrate items of '{prop.name}'", errors)
        if violations:
            raise ValidationError.from_violations(violations)
        container = prop.type.python_type
        if container in (tuple, set, frozenset):
            return container(items)
        return items


__all__ = [
    "InputNormalizer",
    "MappingInputNormalizer",
    "JsonInputNormalizer",
    "ObjectInputNormalizer",
    "Hydrator",
]
