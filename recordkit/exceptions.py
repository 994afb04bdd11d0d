"""
Exception hierarchy for recordkit.

Every failure raised by the engine derives from RecordError and carries a
dotted path to the offending field, plus the expected and given types when
they are known. Aggregating errors (ValidationError, HydrationError) hold
their children so callers can report everything at once.

Example:
    from recordkit import HydrationError

    try:
        User.from_data({"name": "Alice"})
    except HydrationError as e:
        for err in e.errors:
            print(err.path, err.message)
"""

import copy
from typing import Any, Dict, List, Optional, Sequence

_MISSING = object()


def _join_path(segment: str, path: str) -> str:
    if not path:
        return segment
    if not segment:
        return path
    return f"{segment}.{path}"


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


class RecordError(Exception):
    """Base class for all recordkit errors."""

    def __init__(
        self,
        message: str,
        path: str = "",
        expected_type: Optional[str] = None,
        given_type: Optional[str] = None,
        given_value: Any = _MISSING,
    ):
        self.message = message
        self.path = path
        self.expected_type = expected_type
        self.given_type = given_type
        self.given_value = None if given_value is _MISSING else given_value
        super().__init__(message)

    def with_path(self, path: str) -> "RecordError":
        """Return a copy of this error located at ``path``."""
        clone = copy.copy(self)
        clone.path = path
        return clone

    def prepend_path(self, segment: str) -> "RecordError":
        """Return a copy of this error with ``segment`` prepended to its path."""
        return self.with_path(_join_path(segment, self.path))

    def full_message(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f" at path '{self.path}'")
        if self.expected_type is not None and self.given_type is not None:
            parts.append(f" (expected: {self.expected_type}, given: {self.given_type})")
        return "".join(parts)

    def __str__(self) -> str:
        return self.full_message()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, path={self.path!r})"


class MetadataError(RecordError):
    """A type cannot be described (unsupported annotation, bad declaration)."""

    @classmethod
    def unsupported_type(cls, type_name: str, field: str, annotation: Any) -> "MetadataError":
        return cls(
            f"Unsupported type {annotation!r} for property '{field}' of {type_name}",
            path=field,
        )


class MappingError(RecordError):
    """A required key is absent from the input, or the input has the wrong shape."""

    @classmethod
    def missing_required_key(cls, key: str, path: str = "") -> "MappingError":
        return cls(f"Missing required key '{key}'", path=path)


class CastError(RecordError):
    """A value cannot be coerced to the declared field type."""

    @classmethod
    def cannot_cast(cls, value: Any, target: str, path: str = "") -> "CastError":
        given = _type_name(value)
        return cls(
            f"Cannot cast {given} to {target}",
            path=path,
            expected_type=target,
            given_type=given,
            given_value=value,
        )

    @classmethod
    def invalid_enum_value(cls, value: Any, enum_class: type, path: str = "") -> "CastError":
        allowed = ", ".join(repr(member.value) for member in enum_class)
        return cls(
            f"Invalid value {value!r} for enum {enum_class.__name__}; allowed: {allowed}",
            path=path,
            expected_type=enum_class.__name__,
            given_type=_type_name(value),
            given_value=value,
        )

    @classmethod
    def invalid_datetime_format(cls, value: Any, fmt: Optional[str] = None, path: str = "") -> "CastError":
        message = f"Invalid datetime value {value!r}"
        if fmt:
            message += f" for format '{fmt}'"
        return cls(
            message,
            path=path,
            expected_type="datetime",
            given_type=_type_name(value),
            given_value=value,
        )

    @classmethod
    def no_caster_found(cls, value: Any, target: str, path: str = "") -> "CastError":
        given = _type_name(value)
        return cls(
            f"No caster found for {given} to {target}",
            path=path,
            expected_type=target,
            given_type=given,
            given_value=value,
        )


class RuleViolation:
    """One failed validation rule.

    The path is relative to wherever the violation was raised; enclosing
    hydrators prepend their field names as the violation bubbles up.
    """
    __slots__ = ('path', 'rule', 'message', 'invalid_value', 'parameters')

    def __init__(
        self,
        path: str,
        rule: str,
        message: str,
        invalid_value: Any = None,
        parameters: Optional[Dict[str, Any]] = None,
    ):
        object.__setattr__(self, 'path', path)
        object.__setattr__(self, 'rule', rule)
        object.__setattr__(self, 'message', message)
        object.__setattr__(self, 'invalid_value', invalid_value)
        object.__setattr__(self, 'parameters', dict(parameters or {}))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("RuleViolation is immutable")

    def prepend_path(self, segment: str) -> "RuleViolation":
        return RuleViolation(
            _join_path(segment, self.path),
            self.rule,
            self.message,
            self.invalid_value,
            self.parameters,
        )

    def formatted_message(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"RuleViolation(path={self.path!r}, rule={self.rule!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleViolation):
            return NotImplemented
        return (
            self.path == other.path
            and self.rule == other.rule
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash(('RuleViolation', self.path, self.rule, self.message))


class ValidationError(RecordError):
    """One or more validation rules failed."""

    def __init__(self, message: str, violations: Sequence[RuleViolation] = (), path: str = ""):
        super().__init__(message, path=path)
        self.violations: List[RuleViolation] = list(violations)

    @classmethod
    def from_violations(cls, violations: Sequence[RuleViolation]) -> "ValidationError":
        count = len(violations)
        noun = "violation" if count == 1 else "violations"
        return cls(f"Validation failed with {count} {noun}", violations)

    def prepend_path(self, segment: str) -> "ValidationError":
        clone = copy.copy(self)
        clone.path = _join_path(segment, self.path)
        clone.violations = [v.prepend_path(segment) for v in self.violations]
        return clone

    def violations_for(self, path: str) -> List[RuleViolation]:
        return [v for v in self.violations if v.path == path]

    def has_violation(self, path: str, rule: Optional[str] = None) -> bool:
        return any(v.path == path and (rule is None or v.rule == rule) for v in self.violations)

    def messages(self) -> Dict[str, List[str]]:
        """Group violation messages by path."""
        grouped: Dict[str, List[str]] = {}
        for violation in self.violations:
            grouped.setdefault(violation.path, []).append(violation.message)
        return grouped

    def full_message(self) -> str:
        lines = [super().full_message()]
        for violation in self.violations:
            lines.append(f"  - {violation.formatted_message()}")
        return "\n".join(lines)


class HydrationError(RecordError):
    """Hydration of a record failed; ``errors`` holds every underlying failure."""

    def __init__(self, message: str, errors: Sequence[RecordError] = (), path: str = ""):
        super().__init__(message, path=path)
        self.errors: List[RecordError] = list(errors)

    @classmethod
    def from_errors(cls, message: str, errors: Sequence[RecordError]) -> "HydrationError":
        return cls(message, errors)

    def prepend_path(self, segment: str) -> "HydrationError":
        clone = copy.copy(self)
        clone.path = _join_path(segment, self.path)
        clone.errors = [e.prepend_path(segment) for e in self.errors]
        return clone

    def paths(self) -> List[str]:
        """Every leaf path, with validation errors expanded into their violations."""
        result: List[str] = []
        for error in self.errors:
            if isinstance(error, ValidationError) and error.violations:
                result.extend(v.path for v in error.violations)
            elif isinstance(error, HydrationError) and error.errors:
                result.extend(error.paths())
            else:
                result.append(error.path)
        return result

    def full_message(self) -> str:
        lines = [super().full_message()]
        for error in self.errors:
            for line in error.full_message().splitlines():
                lines.append(f"  {line}")
        return "\n".join(lines)


__all__ = [
    "RecordError",
    "MetadataError",
    "MappingError",
    "CastError",
    "RuleViolation",
    "ValidationError",
    "HydrationError",
]
