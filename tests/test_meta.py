"""
Tests for metadata extraction: TypeDescriptor resolution, PropertyMeta
collection and the memoizing MetaFactory.
"""

import dataclasses
import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Set, Tuple, Union

import pytest

from recordkit import (
    ClassMeta, Field, Length, MemoryMetaCache, MetadataError, MetaFactory,
    Record, RecordConfig, Required, StripWhitespace, TypeDescriptor, describe_type,
    get_config_value, is_record_type,
)


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Address(Record):
    street: str
    city: str


class Profile(Record):
    name: Annotated[str, StripWhitespace(), Required(), Length(min=1, max=50)]
    email: Annotated[str, Field(map_from="user_email")]
    age: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    color: Color = Color.RED
    address: Optional[Address] = None
    history: List[Address] = Field(default_factory=list)
    token: Annotated[str, Field(hidden=True)] = ""
    kind: ClassVar[str] = "profile"
    _cache: Dict[str, Any] = {}


@dataclasses.dataclass
class Point:
    x: int
    y: int = 0
    label: str = dataclasses.field(default="origin")
    seen: List[int] = dataclasses.field(default_factory=list)
    computed: int = dataclasses.field(default=0, init=False)


class Plain:
    def __init__(self, name: str, size: int = 3):
        self.name = name
        self.size = size

    name: str
    size: int
    extra: str


# ============================================================
# Test: Type resolution
# ============================================================

class TestDescribeType:
    """Annotations resolve to TypeDescriptor values."""

    def test_scalars(self):
        assert describe_type(str).name == "string"
        assert describe_type(int).name == "int"
        assert describe_type(float).name == "float"
        assert describe_type(bool).name == "bool"
        assert describe_type(int).is_builtin

    def test_optional_is_nullable(self):
        d = describe_type(Optional[int])
        assert d.name == "int"
        assert d.is_nullable

    def test_untyped_list_has_any_items(self):
        d = describe_type(list)
        assert d.is_array
        assert d.array_item_type == TypeDescriptor.any()

    def test_typed_list(self):
        d = describe_type(List[Optional[int]])
        assert d.is_array
        assert d.array_item_type.name == "int"
        assert d.array_item_type.is_nullable

    def test_homogeneous_tuple_and_set(self):
        assert describe_type(Tuple[str, ...]).array_item_type.name == "string"
        assert describe_type(Set[int]).python_type is set

    def test_dict_is_object(self):
        assert describe_type(Dict[str, int]).name == "object"

    def test_enum(self):
        d = describe_type(Color)
        assert d.is_enum
        assert d.enum_class is Color

    def test_datetime_types(self):
        assert describe_type(datetime.datetime).name == "datetime"
        assert describe_type(datetime.date).name == "date"
        assert describe_type(datetime.time).is_datetime

    def test_record_and_dataclass(self):
        assert describe_type(Address).is_record
        assert describe_type(Point).is_record

    def test_opaque_class(self):
        d = describe_type(Plain)
        assert d.name == "Plain"
        assert d.python_type is Plain
        assert not d.is_record

    def test_annotated_is_unwrapped(self):
        assert describe_type(Annotated[int, Required()]).name == "int"

    def test_any_is_nullable(self):
        assert describe_type(Any).accepts_null()

    def test_multi_union_rejected(self):
        with pytest.raises(MetadataError):
            describe_type(Union[int, str])

    def test_literal_rejected(self):
        with pytest.raises(MetadataError):
            describe_type(Literal["a", "b"])

    def test_descriptors_are_values(self):
        assert describe_type(List[int]) == describe_type(List[int])
        assert hash(describe_type(Optional[str])) == hash(describe_type(Optional[str]))

    def test_descriptor_is_immutable(self):
        with pytest.raises(AttributeError):
            describe_type(int).name = "string"


# ============================================================
# Test: ClassMeta construction
# ============================================================

class TestMetaFactory:
    """MetaFactory reads fields, defaults and declarations."""

    def test_fields_in_declaration_order(self):
        meta = MetaFactory().create(Profile)
        assert meta.property_names() == [
            "name", "email", "age", "tags", "color", "address", "history", "token",
        ]
        assert meta.constructor_params == meta.property_names()

    def test_classvar_and_private_skipped(self):
        meta = MetaFactory().create(Profile)
        assert "kind" not in meta.properties
        assert "_cache" not in meta.properties

    def test_required_and_defaults(self):
        meta = MetaFactory().create(Profile)
        assert [p.name for p in meta.required_properties()] == ["name", "email"]
        assert meta.get_property("color").get_default() is Color.RED
        assert meta.get_property("age").has_default

    def test_default_factory_gives_fresh_values(self):
        prop = MetaFactory().create(Profile).get_property("tags")
        first = prop.get_default()
        first.append("x")
        assert prop.get_default() == []

    def test_field_declarations(self):
        meta = MetaFactory().create(Profile)
        assert meta.get_property("email").map_from == "user_email"
        assert meta.get_property("token").is_hidden
        assert [p.name for p in meta.hidden_properties()] == ["token"]
        assert "token" not in [p.name for p in meta.visible_properties()]

    def test_rules_and_pipeline(self):
        prop = MetaFactory().create(Profile).get_property("name")
        assert prop.has_rule(Required)
        assert prop.get_rule(Length).max == 50
        assert prop.pipeline == (StripWhitespace(),)
        assert len(prop.attributes) == 3

    def test_nested_types(self):
        meta = MetaFactory().create(Profile)
        assert meta.get_property("address").type.is_record
        assert meta.get_property("address").type.is_nullable
        assert meta.get_property("history").type.is_array_of_records()

    def test_contains_records_at_any_depth(self):
        assert describe_type(List[List[Address]]).contains_records()
        assert not describe_type(List[List[Address]]).is_array_of_records()
        assert describe_type(Optional[Address]).contains_records()
        assert not describe_type(List[List[int]]).contains_records()

    def test_dataclass(self):
        meta = MetaFactory().create(Point)
        assert meta.property_names() == ["x", "y", "label", "seen"]
        assert meta.get_property("label").get_default() == "origin"
        assert meta.get_property("seen").get_default() == []
        assert meta.get_property("x").is_required()

    def test_plain_class_uses_init_signature(self):
        meta = MetaFactory().create(Plain)
        assert meta.property_names() == ["name", "size"]
        assert meta.get_property("size").get_default() == 3
        assert meta.is_constructor_based()

    def test_frozen_config(self):
        class Frozen(Record):
            record_config = RecordConfig(frozen=True)
            id: int

        meta = MetaFactory().create(Frozen)
        assert meta.is_readonly
        assert meta.get_property("id").is_readonly
        assert meta.attributes["frozen"] is True

    def test_field_frozen(self):
        class Partly(Record):
            id: Annotated[int, Field(frozen=True)]
            name: str

        meta = MetaFactory().create(Partly)
        assert meta.get_property("id").is_readonly
        assert not meta.get_property("name").is_readonly

    def test_unsupported_union_names_field(self):
        class Bad(Record):
            ok: int
            value: Union[int, str]

        with pytest.raises(MetadataError) as exc_info:
            MetaFactory().create(Bad)
        assert exc_info.value.path == "value"

    def test_unresolvable_forward_reference(self):
        class Dangling(Record):
            other: "DoesNotExist"  # noqa: F821

        with pytest.raises(MetadataError):
            MetaFactory().create(Dangling)

    def test_not_a_class(self):
        with pytest.raises(MetadataError):
            MetaFactory().create(42)


# ============================================================
# Test: Caching
# ============================================================

class TestMetaCache:
    """Metadata is built once per type and reset only explicitly."""

    def test_same_object_on_second_create(self):
        factory = MetaFactory()
        assert factory.create(Profile) is factory.create(Profile)

    def test_consecutive_builds_do_not_drift(self):
        first = MetaFactory().create(Profile)
        second = MetaFactory().create(Profile)
        assert first is not second
        assert first.property_names() == second.property_names()
        for name in first.properties:
            assert first.properties[name] == second.properties[name]
            assert first.properties[name].validation_rules == second.properties[name].validation_rules

    def test_shared_cache(self):
        cache = MemoryMetaCache()
        meta = MetaFactory(cache).create(Address)
        assert MetaFactory(cache).create(Address) is meta
        assert cache.has(Address)
        assert cache.count() == 1
        assert cache.cached_types() == [Address]

    def test_set_is_write_once(self):
        cache = MemoryMetaCache()
        first = ClassMeta("Address", Address, {}, [])
        second = ClassMeta("Address", Address, {}, [])
        assert cache.set(Address, first) is first
        assert cache.set(Address, second) is first

    def test_clear(self):
        cache = MemoryMetaCache()
        factory = MetaFactory(cache)
        meta = factory.create(Address)
        factory.clear_cache()
        assert cache.count() == 0
        assert factory.create(Address) is not meta


# ============================================================
# Test: Record detection and class config
# ============================================================

class TestRecordTypesAndConfig:
    """is_record_type and get_config_value."""

    def test_is_record_type(self):
        assert is_record_type(Address)
        assert is_record_type(Point)
        assert not is_record_type(Plain)
        assert not is_record_type(Address(street="a", city="b"))
        assert not is_record_type(dict)

    def test_config_defaults(self):
        assert get_config_value(None, 'frozen') is False
        assert get_config_value(RecordConfig(title="Card"), 'frozen') is False
        assert get_config_value(RecordConfig(frozen=True), 'frozen') is True

    def test_config_fallback(self):
        assert get_config_value(RecordConfig(), 'title', "Profile") == "Profile"
        assert get_config_value(None, 'unknown') is None
