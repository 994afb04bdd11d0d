"""
Schema export from record metadata.

JsonSchemaGenerator produces a JSON Schema (draft 2020-12) document;
OpenApiGenerator produces OpenAPI 3.0 component schemas. Both read only
ClassMeta / PropertyMeta / TypeDescriptor and list visible fields only.
Nested records are emitted once under ``$defs`` (or as sibling components)
and referenced with ``$ref``.

Example:
    from recordkit import JsonSchemaGenerator, OpenApiGenerator

    JsonSchemaGenerator().generate(User)
    # {"$schema": "https://json-schema.org/draft/2020-12/schema",
    #  "title": "User", "type": "object", "properties": {...}, "required": [...]}

    OpenApiGenerator().components([User, Order])
    # {"components": {"schemas": {"User": {...}, "Order": {...}, "LineItem": {...}}}}
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .config import get_config_value
from .constraints import Between, Email, Length, Max, Min, Regex, Required, Url
from .factory import MetaFactory
from .meta import ClassMeta, PropertyMeta, TypeDescriptor

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"

_TYPE_MAP = {
    'string': {"type": "string"},
    'int': {"type": "integer"},
    'float': {"type": "number"},
    'bool': {"type": "boolean"},
    'datetime': {"type": "string", "format": "date-time"},
    'date': {"type": "string", "format": "date"},
    'time': {"type": "string", "format": "time"},
}

_PLAIN_DEFAULTS = (str, int, float, bool, list, dict)


def _enum_schema(enum_class: Any) -> Dict[str, Any]:
    values = [member.value for member in enum_class]
    schema: Dict[str, Any] = {"enum": values}
    if values and all(isinstance(v, str) for v in values):
        schema["type"] = "string"
    elif values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        schema["type"] = "integer"
    return schema


def _refers_to(node: Any, ref: str) -> bool:
    if isinstance(node, dict):
        return node.get("$ref") == ref or any(_refers_to(v, ref) for v in node.values())
    if isinstance(node, list):
        return any(_refers_to(v, ref) for v in node)
    return False


class JsonSchemaGenerator:
    """JSON Schema generator for record types."""

    ref_prefix = "#/$defs/"

    def __init__(self, meta_factory: Optional[MetaFactory] = None):
        self.meta_factory = meta_factory if meta_factory is not None else MetaFactory()

    def generate(self, type_ref: type) -> Dict[str, Any]:
        defs: Dict[str, Dict[str, Any]] = {}
        meta = self.meta_factory.create(type_ref)
        schema: Dict[str, Any] = {"$schema": JSON_SCHEMA_DIALECT}
        root = self.object_schema(meta, defs)
        schema.update(root)
        del defs[meta.type_name]
        # a self-referencing root stays addressable under $defs
        if _refers_to([root, defs], self.ref_prefix + meta.type_name):
            defs[meta.type_name] = root
        if defs:
            schema["$defs"] = defs
        return schema

    def object_schema(self, meta: ClassMeta, defs: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        # placeholder first so self references terminate
        defs.setdefault(meta.type_name, {})
        schema: Dict[str, Any] = {
            "title": get_config_value(meta.attributes, 'title', meta.type_name),
            "type": "object",
            "properties": {},
        }
        description = get_config_value(meta.attributes, 'description')
        if description:
            schema["description"] = description
        required: List[str] = []
        for prop in meta.visible_properties():
            schema["properties"][prop.name] = self.property_schema(prop, defs)
            if prop.is_required() or prop.has_rule(Required):
                required.append(prop.name)
        if required:
            schema["required"] = required
        defs[meta.type_name] = schema
        return schema

    def property_schema(self, prop: PropertyMeta, defs: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        schema = dict(self.type_schema(prop.type.with_nullable(False), defs))
        self._apply_rules(prop, schema)
        if prop.type.is_nullable and prop.type.name != 'any':
            schema = self.nullable(schema)
        if prop.title:
            schema["title"] = prop.title
        if prop.description:
            schema["description"] = prop.description
        if prop.examples:
            schema["examples"] = list(prop.examples)
        if prop.has_default and prop.default_factory is None:
            default = prop.default_value
            if isinstance(default, Enum):
                default = default.value
            if default is None or isinstance(default, _PLAIN_DEFAULTS):
                schema["default"] = default
        return schema

    def type_schema(self, descriptor: TypeDescriptor, defs: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        if descriptor.is_array:
            item = self.type_schema(descriptor.array_item_type, defs)
            if descriptor.array_item_type.is_nullable and descriptor.array_item_type.name != 'any':
                item = self.nullable(item)
            schema: Dict[str, Any] = {"type": "array", "items": item}
            if descriptor.python_type in (set, frozenset):
                schema["uniqueItems"] = True
            return schema
        if descriptor.is_enum:
            return _enum_schema(descriptor.enum_class)
        if descriptor.is_record:
            nested = self.meta_factory.create(descriptor.python_type)
            if nested.type_name not in defs:
                self.object_schema(nested, defs)
            return {"$ref": self.ref_prefix + nested.type_name}
        if descriptor.name in _TYPE_MAP:
            return dict(_TYPE_MAP[descriptor.name])
        if descriptor.name == 'object':
            return {"type": "object"}
        return {}

    def nullable(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        return {"anyOf": [schema, {"type": "null"}]}

    def _apply_rules(self, prop: PropertyMeta, schema: Dict[str, Any]) -> None:
        is_array = prop.type.is_array
        for rule in prop.validation_rules:
            if isinstance(rule, Min):
                schema["minimum"] = rule.min
            elif isinstance(rule, Max):
                schema["maximum"] = rule.max
            elif isinstance(rule, Between):
                schema["minimum"] = rule.min
                schema["maximum"] = rule.max
            elif isinstance(rule, Length):
                if rule.min is not None:
                    schema["minItems" if is_array else "minLength"] = rule.min
                if rule.max is not None:
                    schema["maxItems" if is_array else "maxLength"] = rule.max
            elif isinstance(rule, Regex):
                schema["pattern"] = rule.pattern
            elif isinstance(rule, Email):
                schema["format"] = "email"
            elif isinstance(rule, Url):
                schema["format"] = "uri"


class OpenApiGenerator(JsonSchemaGenerator):
    """OpenAPI 3.0 component schemas for record types."""

    ref_prefix = "#/components/schemas/"

    def generate(self, type_ref: type) -> Dict[str, Any]:
        """Component schema for one type (nested types are referenced, not inlined)."""
        return self.object_schema(self.meta_factory.create(type_ref), {})

    def components(self, type_refs: Iterable[type]) -> Dict[str, Any]:
        schemas: Dict[str, Dict[str, Any]] = {}
        for type_ref in type_refs:
            meta = self.meta_factory.create(type_ref)
            if meta.type_name not in schemas:
                self.object_schema(meta, schemas)
        return {"components": {"schemas": schemas}}

    def nullable(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        if "$ref" in schema:
            return {"allOf": [schema], "nullable": True}
        return {**schema, "nullable": True}


__all__ = ["JsonSchemaGenerator", "OpenApiGenerator", "JSON_SCHEMA_DIALECT"]
