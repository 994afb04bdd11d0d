"""
Tests for the caster registry and the built-in casters.
"""

import datetime
from enum import Enum, IntEnum
from typing import List, Optional

import pytest

from recordkit import (
    ArrayOfCaster, CastError, Caster, CasterRegistry, Context, DateTimeCaster,
    EnumCaster, HydrationError, PropertyMeta, ScalarCaster, describe_type,
)


class Status(Enum):
    ACTIVE = "active"
    BANNED = "banned"


class Level(IntEnum):
    LOW = 1
    HIGH = 2


def prop(annotation, name="value"):
    return PropertyMeta(name, describe_type(annotation))


STRICT = Context(cast_mode="strict")


# ============================================================
# Test: Registry ordering
# ============================================================

class TestCasterRegistry:
    """Highest priority first; ties keep registration order."""

    class Tagging(Caster):
        def __init__(self, tag):
            self.tag = tag

        def supports(self, prop, value):
            return prop.type.name == "string"

        def cast(self, prop, value, context):
            return f"{self.tag}:{value}"

    def test_higher_priority_wins(self):
        registry = CasterRegistry()
        registry.register(ScalarCaster(), priority=10)
        registry.register(self.Tagging("custom"), priority=100)
        assert registry.cast(prop(str), "x") == "custom:x"

    def test_custom_caster_selected_for_every_value(self):
        registry = CasterRegistry()
        registry.register(ScalarCaster(), priority=10)
        custom = self.Tagging("custom")
        registry.register(custom, priority=100)
        for value in ("a", 1, True):
            assert registry.get(prop(str), value) is custom

    def test_ties_keep_registration_order(self):
        registry = CasterRegistry()
        first = self.Tagging("first")
        registry.register(first, priority=5)
        registry.register(self.Tagging("second"), priority=5)
        assert registry.get(prop(str), "x") is first

    def test_late_registration_resorts(self):
        registry = CasterRegistry()
        registry.register(self.Tagging("low"), priority=1)
        assert registry.cast(prop(str), "x") == "low:x"
        registry.register(self.Tagging("high"), priority=2)
        assert registry.cast(prop(str), "x") == "high:x"

    def test_no_caster_found(self):
        registry = CasterRegistry()
        assert not registry.can_cast(prop(int), "1")
        with pytest.raises(CastError):
            registry.cast(prop(int), "1")


# ============================================================
# Test: ScalarCaster
# ============================================================

class TestScalarCaster:
    """Loose coercion by default, exact types in strict mode."""

    caster = ScalarCaster()

    @pytest.mark.parametrize("value,expected", [
        ("42", 42), (" 7 ", 7), (3.0, 3), (True, 1), ("5.0", 5),
    ])
    def test_to_int(self, value, expected):
        assert self.caster.cast(prop(int), value, None) == expected

    @pytest.mark.parametrize("value", ["abc", 3.5, "3.5", [1], None])
    def test_to_int_rejects(self, value):
        with pytest.raises(CastError):
            self.caster.cast(prop(int), value, None)

    def test_to_float(self):
        assert self.caster.cast(prop(float), "2.5", None) == 2.5
        assert self.caster.cast(prop(float), 2, None) == 2.0
        with pytest.raises(CastError):
            self.caster.cast(prop(float), "two", None)

    def test_to_string(self):
        assert self.caster.cast(prop(str), 12, None) == "12"
        assert self.caster.cast(prop(str), False, None) == "false"
        with pytest.raises(CastError):
            self.caster.cast(prop(str), {"a": 1}, None)

    @pytest.mark.parametrize("value,expected", [
        ("true", True), ("YES", True), ("on", True), ("1", True), (1, True),
        ("false", False), ("0", False), ("off", False), ("", False), (0, False),
    ])
    def test_to_bool(self, value, expected):
        assert self.caster.cast(prop(bool), value, None) is expected

    def test_to_bool_rejects_other_words(self):
        with pytest.raises(CastError):
            self.caster.cast(prop(bool), "maybe", None)

    def test_strict_mode(self):
        assert self.caster.cast(prop(int), 5, STRICT) == 5
        assert self.caster.cast(prop(float), 5, STRICT) == 5.0
        with pytest.raises(CastError):
            self.caster.cast(prop(int), "5", STRICT)
        with pytest.raises(CastError):
            self.caster.cast(prop(int), True, STRICT)
        with pytest.raises(CastError):
            self.caster.cast(prop(str), 5, STRICT)

    def test_does_not_support_non_scalars(self):
        assert not self.caster.supports(prop(List[int]), [1])


# ============================================================
# Test: EnumCaster
# ============================================================

class TestEnumCaster:
    """Enum members by value, then by name."""

    caster = EnumCaster()

    def test_by_value(self):
        assert self.caster.cast(prop(Status), "active", None) is Status.ACTIVE

    def test_by_name(self):
        assert self.caster.cast(prop(Status), "BANNED", None) is Status.BANNED

    def test_member_passthrough(self):
        assert self.caster.cast(prop(Status), Status.ACTIVE, None) is Status.ACTIVE

    def test_int_enum(self):
        assert self.caster.cast(prop(Level), 2, None) is Level.HIGH

    def test_invalid_value(self):
        with pytest.raises(CastError) as exc_info:
            self.caster.cast(prop(Status), "deleted", None)
        assert "'active'" in exc_info.value.message
        assert exc_info.value.expected_type == "Status"

    def test_strict_mode_skips_name_lookup(self):
        with pytest.raises(CastError):
            self.caster.cast(prop(Status), "BANNED", STRICT)


# ============================================================
# Test: DateTimeCaster
# ============================================================

class TestDateTimeCaster:
    """ISO strings, custom formats and timestamps."""

    def test_iso_datetime(self):
        value = DateTimeCaster().cast(prop(datetime.datetime), "2024-03-01T10:30:00", None)
        assert value == datetime.datetime(2024, 3, 1, 10, 30)

    def test_zulu_suffix(self):
        value = DateTimeCaster().cast(prop(datetime.datetime), "2024-03-01T10:30:00Z", None)
        assert value.tzinfo is not None
        assert value.utcoffset() == datetime.timedelta(0)

    def test_custom_format_first(self):
        caster = DateTimeCaster(fmt="%d/%m/%Y")
        value = caster.cast(prop(datetime.datetime), "01/03/2024", None)
        assert value == datetime.datetime(2024, 3, 1)

    def test_timestamp(self):
        value = DateTimeCaster().cast(prop(datetime.datetime), 0, None)
        assert value == datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

    def test_date_from_string_and_datetime(self):
        caster = DateTimeCaster()
        assert caster.cast(prop(datetime.date), "2024-03-01", None) == datetime.date(2024, 3, 1)
        assert caster.cast(prop(datetime.date), "2024-03-01T08:00:00", None) == datetime.date(2024, 3, 1)

    def test_time(self):
        assert DateTimeCaster().cast(prop(datetime.time), "08:15", None) == datetime.time(8, 15)

    def test_invalid(self):
        with pytest.raises(CastError):
            DateTimeCaster().cast(prop(datetime.datetime), "not a date", None)
        with pytest.raises(CastError):
            DateTimeCaster().cast(prop(datetime.datetime), ["2024"], None)


# ============================================================
# Test: ArrayOfCaster
# ============================================================

class TestArrayOfCaster:
    """Element-wise casting through the registry."""

    def registry(self):
        registry = CasterRegistry()
        registry.register(ScalarCaster(), priority=30)
        registry.register(EnumCaster(), priority=20)
        registry.register(ArrayOfCaster(registry), priority=5)
        return registry

    def test_casts_each_item(self):
        assert self.registry().cast(prop(List[int]), ["1", 2, 3.0]) == [1, 2, 3]

    def test_nested_arrays(self):
        assert self.registry().cast(prop(List[List[int]]), [["1"], ["2", "3"]]) == [[1], [2, 3]]

    def test_nullable_items(self):
        assert self.registry().cast(prop(List[Optional[Status]]), ["active", None]) == [Status.ACTIVE, None]

    def test_error_path_has_index(self):
        with pytest.raises(CastError) as exc_info:
            self.registry().cast(prop(List[int]), [1, "x"])
        assert exc_info.value.path == "1"

    def test_several_bad_items_aggregate(self):
        with pytest.raises(HydrationError) as exc_info:
            self.registry().cast(prop(List[int]), ["x", 1, "y"])
        assert [e.path for e in exc_info.value.errors] == ["0", "2"]

    def test_untyped_list_not_supported(self):
        assert not ArrayOfCaster(CasterRegistry()).supports(prop(list), [1])
