"""
Normalization: turning record instances back into plain data.

The Normalizer walks declared properties in order, skips hidden ones,
applies the property's explicit transformer or the first registry
transformer that supports the value, and recurses into nested records and
containers of records. Output keys follow the naming strategy when one is
configured, else the field name.

Example:
    from recordkit import EngineFactory, Context, SerializationOptions

    engine = EngineFactory().create()
    engine.normalize(user)   # {"name": "Ann", "role": "admin", "joined": "2024-01-02T00:00:00"}
    ctx = Context(serialization=SerializationOptions(exclude={"joined"}))
    engine.normalize(user, ctx)
"""

import datetime
import logging
from enum import Enum
from typing import Any, Dict, Optional

from .casting import PriorityRegistry
from .context import DEFAULT_CONTEXT, Context
from .exceptions import MetadataError
from .factory import MetaFactory, is_record_type
from .hooks import ComputesLazy
from .mapping import resolve_naming_strategy
from .meta import ClassMeta, PropertyMeta, TypeDescriptor
from .naming import Direction

logger = logging.getLogger(__name__)


class Transformer:
    """Base class for output transformers."""

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        raise NotImplementedError

    def transform(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class TransformerRegistry(PriorityRegistry):

    kind = "transformer"

    def transformers(self):
        return self.entries()

    def get(self, prop: PropertyMeta, value: Any) -> Optional[Transformer]:
        for transformer in self.entries():
            if transformer.supports(prop, value):
                return transformer
        return None

    def can_transform(self, prop: PropertyMeta, value: Any) -> bool:
        return self.get(prop, value) is not None

    def transform(self, prop: PropertyMeta, value: Any, context: Optional[Context] = None) -> Any:
        """Transformed value, or ``value`` unchanged when nothing supports it."""
        transformer = self.get(prop, value)
        if transformer is None:
            return value
        return transformer.transform(prop, value, context)


class DateTimeTransformer(Transformer):
    """datetime / date / time to ISO 8601, or ``fmt`` via strftime."""

    def __init__(self, fmt: Optional[str] = None):
        self.fmt = fmt

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return isinstance(value, (datetime.datetime, datetime.date, datetime.time))

    def transform(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        if self.fmt:
            return value.strftime(self.fmt)
        return value.isoformat()


class EnumTransformer(Transformer):
    """Enum member to its value."""

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return isinstance(value, Enum)

    def transform(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        return value.value


class _LazyValues:
    """One instance's compute_lazy() result with callables resolved once."""
    __slots__ = ('instance', 'raw', 'resolved')

    def __init__(self, instance: Any):
        self.instance = instance
        self.raw = dict(instance.compute_lazy())
        self.resolved: Dict[str, Any] = {}

    def get(self, name: str) -> Any:
        if name not in self.resolved:
            value = self.raw[name]
            self.resolved[name] = value() if callable(value) else value
        return self.resolved[name]


class Normalizer:

    def __init__(self, transformer_registry: TransformerRegistry, meta_factory: MetaFactory):
        self.transformer_registry = transformer_registry
        self.meta_factory = meta_factory

    def normalize(
        self,
        instance: Any,
        class_meta: ClassMeta,
        context: Optional[Context] = None,
        depth: int = 0,
        lazy_cache: Optional[Dict[int, _LazyValues]] = None,
    ) -> Dict[str, Any]:
        context = context or DEFAULT_CONTEXT
        # lazy values are computed at most once per instance within one run
        if lazy_cache is None:
            lazy_cache = {}
        options = context.serialization
        strategy = resolve_naming_strategy(class_meta, context)
        output: Dict[str, Any] = {}
        for name, prop in class_meta.properties.items():
            if prop.is_hidden:
                continue
            if depth == 0 and not options.should_include(name):
                continue
            value = getattr(instance, name, None)
            value = self.normalize_value(prop, value, context, depth, lazy_cache)
            if value is None and options.exclude_none:
                continue
            key = strategy.convert(name, Direction.TO_SOURCE) if strategy is not None else name
            output[key] = value
        if options.include_lazy is not None and isinstance(instance, ComputesLazy):
            self._merge_lazy(instance, class_meta, output, context, depth, lazy_cache)
        return output

    def _merge_lazy(
        self,
        instance: Any,
        class_meta: ClassMeta,
        output: Dict[str, Any],
        context: Context,
        depth: int,
        lazy_cache: Dict[int, _LazyValues],
    ) -> None:
        options = context.serialization
        strategy = resolve_naming_strategy(class_meta, context)
        lazy = lazy_cache.get(id(instance))
        if lazy is None:
            lazy = lazy_cache[id(instance)] = _LazyValues(instance)
        for name in lazy.raw:
            if not options.should_include_lazy(name):
                continue
            if depth == 0 and not options.should_include(name):
                continue
            key = strategy.convert(name, Direction.TO_SOURCE) if strategy is not None else name
            if name in class_meta.properties or key in output:
                raise MetadataError(
                    f"Lazy property '{name}' conflicts with a declared field of {class_meta.type_name}",
                    path=name,
                )
            prop = PropertyMeta(name, TypeDescriptor.any())
            value = self.normalize_value(prop, lazy.get(name), context, depth, lazy_cache)
            if value is None and options.exclude_none:
                continue
            output[key] = value

    def normalize_value(
        self,
        prop: PropertyMeta,
        value: Any,
        context: Context,
        depth: int,
        lazy_cache: Optional[Dict[int, _LazyValues]] = None,
    ) -> Any:
        if value is None:
            return None
        if prop.transformer_ref is not None:
            return prop.transformer_ref.transform(prop, value, context)
        return self._plain(prop, value, context, depth, lazy_cache if lazy_cache is not None else {})

    def _plain(
        self,
        prop: PropertyMeta,
        value: Any,
        context: Context,
        depth: int,
        lazy_cache: Dict[int, _LazyValues],
    ) -> Any:
        if is_record_type(type(value)):
            if not context.serialization.can_descend(depth + 1):
                return None
            meta = self.meta_factory.create(type(value))
            return self.normalize(value, meta, context, depth + 1, lazy_cache)
        if isinstance(value, (list, tuple, set, frozenset)):
            item_prop = prop.for_item() if prop.type.is_array else prop
            return [self._plain(item_prop, item, context, depth, lazy_cache) for item in value]
        if isinstance(value, dict):
            return {k: self._plain(prop, v, context, depth, lazy_cache) for k, v in value.items()}
        return self.transformer_registry.transform(prop, value, context)


__all__ = [
    "Transformer",
    "TransformerRegistry",
    "DateTimeTransformer",
    "EnumTransformer",
    "Normalizer",
]
