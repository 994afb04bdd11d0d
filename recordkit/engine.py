"""
Engine: the hydrate / normalize facade.

An Engine owns a MetaFactory, a Hydrator (with its caster and validator
registries) and a Normalizer (with its transformer registry). It holds no
per-call state. Build one with EngineFactory, which wires the built-in
casters, validators, transformers and input normalizers.

Example:
    from recordkit import EngineFactory, Context, SnakeCaseStrategy

    engine = EngineFactory().create()
    user = engine.hydrate(User, {"first_name": "Ann"}, Context(naming_strategy=SnakeCaseStrategy()))
    engine.normalize_to_json(user)   # '{"first_name": "Ann"}'
"""

import json
import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .casting import ArrayOfCaster, CasterRegistry, DateTimeCaster, EnumCaster, ScalarCaster
from .context import DEFAULT_CONTEXT, Context
from .exceptions import HydrationError
from .factory import MetaFactory
from .hooks import PostHydrate, PreHydrate, PreSerialize
from .hydration import (
    Hydrator, InputNormalizer, JsonInputNormalizer, MappingInputNormalizer, ObjectInputNormalizer,
)
from .mapping import Mapper
from .meta import MemoryMetaCache, MetaCache
from .normalization import DateTimeTransformer, EnumTransformer, Normalizer, TransformerRegistry
from .validation import (
    BetweenValidator, EmailValidator, LengthValidator, MaxValidator, MinValidator,
    RegexValidator, RequiredIfValidator, RequiredValidator, UrlValidator, ValidValidator,
    ValidatorRegistry,
)

logger = logging.getLogger(__name__)


class Engine:

    def __init__(self, meta_factory: MetaFactory, hydrator: Hydrator, normalizer: Normalizer):
        self.meta_factory = meta_factory
        self.hydrator = hydrator
        self.normalizer = normalizer
        self._input_normalizers: List[InputNormalizer] = []

    @property
    def mapper(self) -> Mapper:
        return self.hydrator.mapper

    def add_input_normalizer(self, normalizer: InputNormalizer) -> "Engine":
        self._input_normalizers.append(normalizer)
        return self

    def input_normalizers(self) -> List[InputNormalizer]:
        return list(self._input_normalizers)

    def to_mapping(self, source: Any) -> Dict[str, Any]:
        """Reduce raw input to a plain mapping with the first matching normalizer."""
        for normalizer in self._input_normalizers:
            if normalizer.supports(source):
                logger.debug("Normalizing %s input with %r", type(source).__name__, normalizer)
                return normalizer.normalize(source)
        raise HydrationError(f"Unsupported input of type {type(source).__name__}")

    def hydrate(self, type_ref: type, source: Any, context: Optional[Context] = None) -> Any:
        return self._hydrate(type_ref, source, context, None)

    def hydrate_partial(
        self,
        type_ref: type,
        source: Any,
        fields: Iterable[str],
        context: Optional[Context] = None,
    ) -> Any:
        """Hydrate only ``fields``; every other property is treated as absent.

        Unlisted properties take their default (or None when nullable), so
        a partial target still needs defaults for the fields it leaves out.
        """
        return self._hydrate(type_ref, source, context, frozenset(fields))

    def _hydrate(
        self,
        type_ref: type,
        source: Any,
        context: Optional[Context],
        fields: Optional[FrozenSet[str]],
    ) -> Any:
        context = context or DEFAULT_CONTEXT
        meta = self.meta_factory.create(type_ref)
        logger.debug("Hydrating %s", meta.type_name)
        if fields is not None:
            for name in sorted(fields):
                if name not in meta.properties:
                    raise HydrationError(f"Unknown field '{name}' on {meta.type_name}", path=name)
        data = self.to_mapping(source)
        if issubclass(type_ref, PreHydrate):
            data = type_ref.transform_input(data)
        mapped = self.hydrator.mapper.map(data, meta, context)
        if fields is not None:
            mapped = {name: value for name, value in mapped.items() if name in fields}
        instance = self.hydrator.hydrate(meta, mapped, context)
        if isinstance(instance, PostHydrate):
            instance.after_hydration()
        return instance

    def hydrate_many(self, type_ref: type, items: Iterable[Any], context: Optional[Context] = None) -> List[Any]:
        return [self.hydrate(type_ref, item, context) for item in items]

    def normalize(self, instance: Any, context: Optional[Context] = None) -> Dict[str, Any]:
        context = context or DEFAULT_CONTEXT
        if isinstance(instance, PreSerialize):
            instance.before_serialization()
        meta = self.meta_factory.create(type(instance))
        data = self.normalizer.normalize(instance, meta, context)
        wrap = context.serialization.wrap
        if wrap:
            return {wrap: data}
        return data

    def normalize_to_json(
        self,
        instance: Any,
        context: Optional[Context] = None,
        indent: Optional[int] = None,
        sort_keys: bool = False,
    ) -> str:
        data = self.normalize(instance, context)
        return encode_json(data, indent=indent, sort_keys=sort_keys)


def encode_json(data: Any, indent: Optional[int] = None, sort_keys: bool = False) -> str:
    """json.dumps with encode failures raised as HydrationError."""
    try:
        return json.dumps(data, indent=indent, sort_keys=sort_keys, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise HydrationError(f"Failed to encode JSON: {e}") from e


class EngineFactory:
    """Builder for Engine instances.

    ``with_*`` methods return a new factory; ``create()`` fills in the
    built-in registries for anything not supplied.
    """

    def __init__(
        self,
        meta_cache: Optional[MetaCache] = None,
        caster_registry: Optional[CasterRegistry] = None,
        validator_registry: Optional[ValidatorRegistry] = None,
        transformer_registry: Optional[TransformerRegistry] = None,
    ):
        self.meta_cache = meta_cache
        self.caster_registry = caster_registry
        self.validator_registry = validator_registry
        self.transformer_registry = transformer_registry

    def _replace(self, **changes: Any) -> "EngineFactory":
        values = {
            'meta_cache': self.meta_cache,
            'caster_registry': self.caster_registry,
            'validator_registry': self.validator_registry,
            'transformer_registry': self.transformer_registry,
        }
        values.update(changes)
        return EngineFactory(**values)

    def with_meta_cache(self, cache: MetaCache) -> "EngineFactory":
        return self._replace(meta_cache=cache)

    def with_caster_registry(self, registry: CasterRegistry) -> "EngineFactory":
        return self._replace(caster_registry=registry)

    def with_validator_registry(self, registry: ValidatorRegistry) -> "EngineFactory":
        return self._replace(validator_registry=registry)

    def with_transformer_registry(self, registry: TransformerRegistry) -> "EngineFactory":
        return self._replace(transformer_registry=registry)

    def create(self) -> Engine:
        meta_factory = MetaFactory(self.meta_cache if self.meta_cache is not None else MemoryMetaCache())
        casters = self.caster_registry if self.caster_registry is not None else default_caster_registry()
        validators = self.validator_registry if self.validator_registry is not None else default_validator_registry()
        transformers = (
            self.transformer_registry if self.transformer_registry is not None else default_transformer_registry()
        )
        hydrator = Hydrator(Mapper(), casters, meta_factory, validators)
        engine = Engine(meta_factory, hydrator, Normalizer(transformers, meta_factory))
        engine.add_input_normalizer(MappingInputNormalizer())
        engine.add_input_normalizer(JsonInputNormalizer())
        engine.add_input_normalizer(ObjectInputNormalizer(meta_factory))
        return engine


def default_caster_registry() -> CasterRegistry:
    registry = CasterRegistry()
    registry.register(ScalarCaster(), priority=30)
    registry.register(EnumCaster(), priority=20)
    registry.register(DateTimeCaster(), priority=10)
    registry.register(ArrayOfCaster(registry), priority=5)
    return registry


def default_validator_registry() -> ValidatorRegistry:
    registry = ValidatorRegistry()
    registry.register(RequiredValidator(), priority=100)
    registry.register(RequiredIfValidator(), priority=90)
    registry.register(EmailValidator(), priority=50)
    registry.register(UrlValidator(), priority=50)
    registry.register(RegexValidator(), priority=50)
    registry.register(MinValidator(), priority=40)
    registry.register(MaxValidator(), priority=40)
    registry.register(BetweenValidator(), priority=40)
    registry.register(LengthValidator(), priority=30)
    registry.register(ValidValidator(), priority=10)
    return registry


def default_transformer_registry() -> TransformerRegistry:
    registry = TransformerRegistry()
    registry.register(EnumTransformer(), priority=20)
    registry.register(DateTimeTransformer(), priority=10)
    return registry


__all__ = [
    "Engine",
    "EngineFactory",
    "encode_json",
    "default_caster_registry",
    "default_validator_registry",
    "default_transformer_registry",
]
