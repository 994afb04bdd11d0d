"""
Validation: checking cast field values against declared rules.

Every validator whose rule is declared on a property runs, in descending
priority order; all violations are collected and raised together as one
ValidationError. Violation paths are relative to the property being
checked (empty for the property itself); the hydrator prepends field names.

Example:
    from recordkit import Validator, ValidatorRegistry, RuleViolation, ValidationError

    class EvenValidator(Validator):
        def supports(self, prop, value):
            return prop.has_attribute(Even)

        def validate(self, prop, value, context):
            if value is not None and value % 2:
                raise ValidationError.from_violations(
                    [RuleViolation("", "even", "The value must be even", value)]
                )

    registry = ValidatorRegistry()
    registry.register(EvenValidator(), priority=60)
"""

import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Sized

from .casting import PriorityRegistry
from .constraints import (
    Between, Email, Length, Max, Min, Regex, Required, RequiredIf, Rule, Url, Valid,
)
from .context import Context
from .exceptions import RuleViolation, ValidationError
from .factory import is_record_type
from .meta import PropertyMeta

logger = logging.getLogger(__name__)

_EMAIL_REGEX = re.compile(
    r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}'
    r'[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$'
)

_URL_REGEX = re.compile(
    r'^([a-zA-Z][a-zA-Z0-9+.-]*):'  # scheme
    r'//'  # authority indicator
    r'([^/?#\s]+)'  # authority (host:port)
    r'([^?#\s]*)'  # path
    r'(?:\?([^#\s]*))?'  # query
    r'(?:#(\S*))?$'  # fragment
)


def is_empty(value: Any) -> bool:
    """None, "" (after stripping) and empty collections count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def _violation(rule: Rule, value: Any, path: str = "") -> RuleViolation:
    return RuleViolation(path, rule.rule, rule.get_message(), value, rule.parameters())


class ValidationContext:
    """What a validator can see besides the value it checks.

    ``all_data`` is the mapped input of the record being validated, keyed by
    property name, so conditional rules can inspect sibling values.
    """

    def __init__(
        self,
        prop: Optional[PropertyMeta],
        all_data: Mapping[str, Any],
        context: Optional[Context] = None,
        registry: Optional["ValidatorRegistry"] = None,
        meta_factory: Any = None,
    ):
        self.property = prop
        self.all_data = all_data
        self.context = context
        self.registry = registry
        self.meta_factory = meta_factory

    def has_field(self, name: str) -> bool:
        return name in self.all_data

    def get_field_value(self, name: str, default: Any = None) -> Any:
        return self.all_data.get(name, default)

    def for_property(self, prop: PropertyMeta) -> "ValidationContext":
        return ValidationContext(prop, self.all_data, self.context, self.registry, self.meta_factory)


class Validator:
    """Base class for validators.

    ``validate`` raises ValidationError carrying one or more violations.
    """

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        raise NotImplementedError

    def validate(self, prop: PropertyMeta, value: Any, context: ValidationContext) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RuleValidator(Validator):
    """Validator driven by one Rule class declared on the property."""

    rule_type: type = Rule
    skips_none = True

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return prop.has_rule(self.rule_type)

    def validate(self, prop: PropertyMeta, value: Any, context: ValidationContext) -> None:
        if value is None and self.skips_none:
            return
        violations: List[RuleViolation] = []
        for rule in prop.validation_rules:
            if isinstance(rule, self.rule_type):
                violations.extend(self.check(rule, prop, value, context))
        if violations:
            raise ValidationError.from_violations(violations)

    def check(self, rule: Any, prop: PropertyMeta, value: Any, context: ValidationContext) -> List[RuleViolation]:
        raise NotImplementedError


class RequiredValidator(RuleValidator):
    rule_type = Required
    skips_none = False

    def check(self, rule, prop, value, context):
        if not context.has_field(prop.name) or is_empty(value):
            return [_violation(rule, value)]
        return []


class RequiredIfValidator(RuleValidator):
    rule_type = RequiredIf
    skips_none = False

    def check(self, rule, prop, value, context):
        if context.get_field_value(rule.field) != rule.value:
            return []
        if not context.has_field(prop.name) or is_empty(value):
            return [_violation(rule, value)]
        return []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class MinValidator(RuleValidator):
    rule_type = Min

    def check(self, rule, prop, value, context):
        if not _is_number(value) or value < rule.min:
            return [_violation(rule, value)]
        return []


class MaxValidator(RuleValidator):
    rule_type = Max

    def check(self, rule, prop, value, context):
        if not _is_number(value) or value > rule.max:
            return [_violation(rule, value)]
        return []


class BetweenValidator(RuleValidator):
    rule_type = Between

    def check(self, rule, prop, value, context):
        if not _is_number(value) or not rule.min <= value <= rule.max:
            return [_violation(rule, value)]
        return []


class LengthValidator(RuleValidator):
    """String length bounds; other sized values are measured with len()."""

    rule_type = Length

    def check(self, rule, prop, value, context):
        if not isinstance(value, Sized):
            return [_violation(rule, value)]
        length = len(value)
        if rule.min is not None and length < rule.min:
            return [_violation(rule, value)]
        if rule.max is not None and length > rule.max:
            return [_violation(rule, value)]
        return []


class RegexValidator(RuleValidator):
    rule_type = Regex

    def check(self, rule, prop, value, context):
        if value == "":
            return []
        if not isinstance(value, str) or not rule.compiled.search(value):
            return [_violation(rule, value)]
        return []


class EmailValidator(RuleValidator):
    rule_type = Email

    def check(self, rule, prop, value, context):
        if value == "":
            return []
        if not isinstance(value, str) or not _EMAIL_REGEX.match(value):
            return [_violation(rule, value)]
        # Must have at least one dot in domain
        domain = value.rsplit('@', 1)[1]
        if '.' not in domain:
            return [_violation(rule, value)]
        return []


class UrlValidator(RuleValidator):
    rule_type = Url

    def check(self, rule, prop, value, context):
        if value == "":
            return []
        if not isinstance(value, str) or not _URL_REGEX.match(value):
            return [_violation(rule, value)]
        return []


class ValidValidator(RuleValidator):
    """Recursively validates nested record instances.

    With ``each_item`` every record element of a list is validated and
    violation paths are prefixed with the element index.
    """

    rule_type = Valid

    def check(self, rule, prop, value, context):
        if rule.each_item and isinstance(value, (list, tuple)):
            violations: List[RuleViolation] = []
            for index, item in enumerate(value):
                for violation in self.validate_instance(item, context):
                    violations.append(violation.prepend_path(str(index)))
            return violations
        return self.validate_instance(value, context)

    def validate_instance(self, instance: Any, context: ValidationContext) -> List[RuleViolation]:
        if instance is None or not is_record_type(type(instance)):
            return []
        if context.registry is None or context.meta_factory is None:
            return []
        meta = context.meta_factory.create(type(instance))
        values = {name: getattr(instance, name, None) for name in meta.properties}
        nested = ValidationContext(None, values, context.context, context.registry, context.meta_factory)
        return context.registry.validate_record(meta, values, nested)


class ValidatorRegistry(PriorityRegistry):

    kind = "validator"

    def validators(self) -> List[Validator]:
        return self.entries()

    def get(self, prop: PropertyMeta, value: Any) -> Optional[Validator]:
        for validator in self.entries():
            if validator.supports(prop, value):
                return validator
        return None

    def can_validate(self, prop: PropertyMeta, value: Any) -> bool:
        return self.get(prop, value) is not None

    def collect(self, prop: PropertyMeta, value: Any, context: ValidationContext) -> List[RuleViolation]:
        """Run every supporting validator and return their violations."""
        violations: List[RuleViolation] = []
        prop_context = context.for_property(prop)
        for validator in self.entries():
            if not validator.supports(prop, value):
                continue
            try:
                validator.validate(prop, value, prop_context)
            except ValidationError as e:
                violations.extend(e.violations)
        return violations

    def validate(self, prop: PropertyMeta, value: Any, context: ValidationContext) -> None:
        violations = self.collect(prop, value, context)
        if violations:
            raise ValidationError.from_violations(violations)

    def validate_record(
        self,
        class_meta: Any,
        values: Dict[str, Any],
        context: ValidationContext,
    ) -> List[RuleViolation]:
        """Violations for every property of a record, paths prefixed with field names."""
        violations: List[RuleViolation] = []
        for name, prop in class_meta.properties.items():
            for violation in self.collect(prop, values.get(name), context):
                violations.append(violation.prepend_path(name))
        return violations


__all__ = [
    "ValidationContext",
    "Validator",
    "RuleValidator",
    "ValidatorRegistry",
    "RequiredValidator",
    "RequiredIfValidator",
    "MinValidator",
    "MaxValidator",
    "BetweenValidator",
    "LengthValidator",
    "RegexValidator",
    "EmailValidator",
    "UrlValidator",
    "ValidValidator",
    "is_empty",
]
