"""
recordkit - metadata-driven record hydration and normalization

Converts loosely-typed input (mappings, JSON text, arbitrary objects) into
typed, validated records, and records back into plain data. Field names,
types, renames, casting and validation rules are read from the record's
annotations once and cached.

Example:
    from typing import Annotated, List, Optional
    from recordkit import Record, Field, Required, Length, Email, Context, SnakeCaseStrategy

    class LineItem(Record):
        title: Annotated[str, Length(min=3)]
        quantity: int = 1

    class Order(Record):
        customerEmail: Annotated[str, Required(), Email()]
        items: List[LineItem]
        note: Optional[str] = None
        internalRef: Annotated[str, Field(hidden=True)] = ""

    ctx = Context(naming_strategy=SnakeCaseStrategy())
    order = Order.from_data(
        {"customer_email": "ann@example.com", "items": [{"title": "Pen", "quantity": "2"}]},
        ctx,
    )
    order.to_dict(ctx)
    # {"customer_email": "ann@example.com", "items": [{"title": "Pen", "quantity": 2}], "note": None}
"""

__version__ = "0.1.0"

# --- Errors ---
from .exceptions import (
    RecordError,
    MetadataError,
    MappingError,
    CastError,
    RuleViolation,
    ValidationError,
    HydrationError,
)

# --- Declarations ---
from .fields import Field, FieldInfo
from .config import RecordConfig, CONFIG_DEFAULTS, get_config_value
from .constraints import (
    Rule,
    Required, RequiredIf,
    Min, Max, Between,
    Length, Regex, Email, Url,
    Valid,
    PipelineStep,
    StripWhitespace, ToLower, ToUpper,
)

# --- Metadata ---
from .meta import TypeDescriptor, PropertyMeta, ClassMeta, MetaCache, MemoryMetaCache
from .factory import MetaFactory, describe_type, is_record_type

# --- Per-call configuration ---
from .context import Context, SerializationOptions
from .naming import Direction, NamingStrategy, IdentityStrategy, SnakeCaseStrategy, CamelCaseStrategy

# --- Pipeline ---
from .mapping import Mapper
from .casting import Caster, CasterRegistry, ScalarCaster, EnumCaster, DateTimeCaster, ArrayOfCaster
from .validation import (
    ValidationContext,
    Validator,
    RuleValidator,
    ValidatorRegistry,
    RequiredValidator,
    RequiredIfValidator,
    MinValidator,
    MaxValidator,
    BetweenValidator,
    LengthValidator,
    RegexValidator,
    EmailValidator,
    UrlValidator,
    ValidValidator,
)
from .hydration import (
    Hydrator,
    InputNormalizer,
    MappingInputNormalizer,
    JsonInputNormalizer,
    ObjectInputNormalizer,
)
from .normalization import Transformer, TransformerRegistry, DateTimeTransformer, EnumTransformer, Normalizer
from .hooks import PreHydrate, PostHydrate, PreSerialize, ComputesLazy

# --- Engine ---
from .engine import (
    Engine,
    EngineFactory,
    default_caster_registry,
    default_validator_registry,
    default_transformer_registry,
)
from .defaults import get_default_engine, set_default_engine, reset_default_engine

# --- Records and collections ---
from .record import Record
from .collection import DataCollection, PaginatedCollection, collect, is_paginator

# --- Schema export ---
from .schema import JsonSchemaGenerator, OpenApiGenerator

__all__ = [
    # Version
    "__version__",

    # Errors
    "RecordError", "MetadataError", "MappingError", "CastError",
    "RuleViolation", "ValidationError", "HydrationError",

    # Declarations
    "Field", "FieldInfo",
    "RecordConfig", "CONFIG_DEFAULTS", "get_config_value",
    "Rule", "Required", "RequiredIf", "Min", "Max", "Between",
    "Length", "Regex", "Email", "Url", "Valid",
    "PipelineStep", "StripWhitespace", "ToLower", "ToUpper",

    # Metadata
    "TypeDescriptor", "PropertyMeta", "ClassMeta", "MetaCache", "MemoryMetaCache",
    "MetaFactory", "describe_type", "is_record_type",

    # Configuration
    "Context", "SerializationOptions",
    "Direction", "NamingStrategy", "IdentityStrategy", "SnakeCaseStrategy", "CamelCaseStrategy",

    # Pipeline
    "Mapper",
    "Caster", "CasterRegistry", "ScalarCaster", "EnumCaster", "DateTimeCaster", "ArrayOfCaster",
    "ValidationContext", "Validator", "RuleValidator", "ValidatorRegistry",
    "RequiredValidator", "RequiredIfValidator", "MinValidator", "MaxValidator",
    "BetweenValidator", "LengthValidator", "RegexValidator", "EmailValidator",
    "UrlValidator", "ValidValidator",
    "Hydrator", "InputNormalizer", "MappingInputNormalizer",
    "JsonInputNormalizer", "ObjectInputNormalizer",
    "Transformer", "TransformerRegistry", "DateTimeTransformer", "EnumTransformer", "Normalizer",
    "PreHydrate", "PostHydrate", "PreSerialize", "ComputesLazy",

    # Engine
    "Engine", "EngineFactory",
    "default_caster_registry", "default_validator_registry", "default_transformer_registry",
    "get_default_engine", "set_default_engine", "reset_default_engine",

    # Records and collections
    "Record",
    "DataCollection", "PaginatedCollection", "collect", "is_paginator",

    # Schema export
    "JsonSchemaGenerator", "OpenApiGenerator",
]
