"""
Tests for validation rules, the built-in validators and the registry.
"""

from typing import Annotated, List, Optional

import pytest

from recordkit import (
    Between, Email, Length, Max, MetaFactory, Min, PropertyMeta, Record, Regex, Required,
    RequiredIf, RuleViolation, Url, Valid, ValidationContext, ValidationError,
    Validator, describe_type, default_validator_registry,
)
from recordkit.validation import is_empty


def prop(annotation, *rules, name="value"):
    return PropertyMeta(name, describe_type(annotation), validation_rules=tuple(rules))


def violations(p, value, data=None):
    """Violations from the default registry, with ``value`` present in the input."""
    registry = default_validator_registry()
    all_data = {p.name: value} if data is None else data
    return registry.collect(p, value, ValidationContext(None, all_data, registry=registry))


class Signup(Record):
    name: Annotated[str, Required(), Length(min=2)]
    email: Annotated[str, Email()]


class Team(Record):
    lead: Annotated[Optional[Signup], Valid()] = None
    members: Annotated[List[Signup], Valid(each_item=True)] = []


# ============================================================
# Test: Rule declarations
# ============================================================

class TestRules:
    """Rules are immutable values with default messages."""

    def test_default_messages(self):
        assert Required().get_message() == "This field is required"
        assert Min(3).get_message() == "The value must be at least 3"
        assert Max(9).get_message() == "The value must be at most 9"
        assert Between(1, 5).get_message() == "The value must be between 1 and 5"
        assert Email().get_message() == "The value must be a valid email address"
        assert Url().get_message() == "The value must be a valid URL"
        assert RequiredIf("kind", "company").get_message() == "This field is required when kind is set"

    def test_length_messages(self):
        assert Length(min=2, max=5).get_message() == "The length must be between 2 and 5 characters"
        assert Length(min=2).get_message() == "The length must be at least 2 characters"
        assert Length(max=5).get_message() == "The length must be at most 5 characters"

    def test_custom_message(self):
        assert Min(1, message="Too small").get_message() == "Too small"

    def test_length_needs_a_bound(self):
        with pytest.raises(ValueError):
            Length()

    def test_rules_are_immutable(self):
        with pytest.raises(AttributeError):
            Min(1).min = 2

    def test_equality(self):
        assert Min(1) == Min(1)
        assert Min(1) != Min(2)
        assert Regex(r"^a") == Regex(r"^a")
        assert len({Between(1, 2), Between(1, 2)}) == 1


# ============================================================
# Test: Built-in validators
# ============================================================

class TestBuiltinValidators:
    """Each rule passes good values and reports bad ones."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_required_rejects_empty(self, value):
        result = violations(prop(Optional[str], Required()), value)
        assert [v.rule for v in result] == ["required"]

    def test_required_rejects_absent(self):
        result = violations(prop(Optional[str], Required()), None, data={})
        assert result[0].message == "This field is required"

    def test_required_accepts_zero_and_false(self):
        assert violations(prop(int, Required()), 0) == []
        assert violations(prop(bool, Required()), False) == []

    def test_required_if(self):
        p = prop(Optional[str], RequiredIf("kind", "company"), name="vat")
        assert violations(p, None, data={"kind": "person"}) == []
        result = violations(p, None, data={"kind": "company"})
        assert result[0].rule == "required_if"
        assert result[0].parameters == {"field": "kind", "value": "company"}
        assert violations(p, "X1", data={"kind": "company", "vat": "X1"}) == []

    def test_min_max_are_inclusive(self):
        assert violations(prop(int, Min(1)), 1) == []
        assert violations(prop(int, Max(10)), 10) == []
        assert violations(prop(int, Min(1)), 0)[0].rule == "min"
        assert violations(prop(int, Max(10)), 11)[0].rule == "max"

    def test_between(self):
        p = prop(float, Between(0, 1))
        assert violations(p, 0.5) == []
        assert violations(p, 1.5)[0].invalid_value == 1.5

    def test_numeric_rules_reject_non_numbers(self):
        assert violations(prop(bool, Min(0)), True)[0].rule == "min"

    def test_numeric_rules_skip_none(self):
        assert violations(prop(Optional[int], Min(5)), None) == []

    def test_length(self):
        p = prop(str, Length(min=2, max=4))
        assert violations(p, "abc") == []
        assert violations(p, "a")[0].rule == "length"
        assert violations(p, "abcde")[0].rule == "length"
        assert violations(prop(List[int], Length(max=1)), [1, 2])[0].rule == "length"

    def test_regex(self):
        p = prop(str, Regex(r"^[A-Z]{3}$"))
        assert violations(p, "EUR") == []
        assert violations(p, "eur")[0].rule == "regex"
        assert violations(p, "") == []

    @pytest.mark.parametrize("value", ["ann@example.com", "first.last+tag@mail.co.uk"])
    def test_email_accepts(self, value):
        assert violations(prop(str, Email()), value) == []

    @pytest.mark.parametrize("value", ["ann", "ann@", "ann@localhost", "@example.com", "a b@example.com"])
    def test_email_rejects(self, value):
        assert violations(prop(str, Email()), value)[0].rule == "email"

    def test_url(self):
        p = prop(str, Url())
        assert violations(p, "https://example.com/path?q=1") == []
        assert violations(p, "example.com")[0].rule == "url"
        assert violations(p, "") == []

    def test_all_rules_reported(self):
        p = prop(str, Required(), Length(min=3), Regex(r"^\d+$"))
        result = violations(p, "ab")
        assert [v.rule for v in result] == ["regex", "length"]

    def test_violation_paths_are_relative(self):
        result = violations(prop(int, Min(1)), 0)
        assert result[0].path == ""


# ============================================================
# Test: Nested validation
# ============================================================

class TestValidRule:
    """Valid() re-checks nested records, with paths into them."""

    def test_nested_record(self):
        team = Team(lead=Signup(name="A", email="nope"))
        registry = default_validator_registry()
        factory = MetaFactory()
        meta = factory.create(Team)
        ctx = ValidationContext(None, team._values(), registry=registry, meta_factory=factory)
        result = registry.validate_record(meta, team._values(), ctx)
        assert sorted(v.path for v in result) == ["lead.email", "lead.name"]

    def test_each_item_prefixes_index(self):
        team = Team(members=[Signup(name="Ann", email="ann@example.com"), Signup(name="Bo", email="x")])
        registry = default_validator_registry()
        factory = MetaFactory()
        meta = factory.create(Team)
        ctx = ValidationContext(None, team._values(), registry=registry, meta_factory=factory)
        result = registry.validate_record(meta, team._values(), ctx)
        assert [v.path for v in result] == ["members.1.email"]


# ============================================================
# Test: Registry
# ============================================================

class TestValidatorRegistry:
    """Custom validators register alongside the built-ins."""

    class Even:
        pass

    class EvenValidator(Validator):
        def supports(self, prop, value):
            return prop.has_attribute(TestValidatorRegistry.Even)

        def validate(self, prop, value, context):
            if value % 2:
                raise ValidationError.from_violations([RuleViolation("", "even", "The value must be even", value)])

    def test_custom_validator(self):
        registry = default_validator_registry()
        registry.register(self.EvenValidator(), priority=60)
        p = PropertyMeta("n", describe_type(int), attributes=(self.Even(),))
        ctx = ValidationContext(None, {"n": 3}, registry=registry)
        with pytest.raises(ValidationError) as exc_info:
            registry.validate(p, 3, ctx)
        assert exc_info.value.violations[0].rule == "even"
        registry.validate(p, 4, ctx)

    def test_can_validate(self):
        registry = default_validator_registry()
        assert registry.can_validate(prop(int, Min(1)), 0)
        assert not registry.can_validate(prop(int), 0)


# ============================================================
# Test: Emptiness
# ============================================================

@pytest.mark.parametrize("value,expected", [
    (None, True), ("", True), (" ", True), ([], True), ({}, True),
    (0, False), (False, False), ("a", False), ([0], False),
])
def test_is_empty(value, expected):
    assert is_empty(value) is expected
