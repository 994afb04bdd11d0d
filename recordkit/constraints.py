"""
Validation rules and input pipeline steps for recordkit.

Rules and steps are attached to fields with typing.Annotated. Rules are
checked after a value has been cast; pipeline steps run on the raw input
value before casting.

Example:
    from typing import Annotated, Optional
    from recordkit import Record, Required, Length, Email, Between, StripWhitespace

    class Signup(Record):
        name: Annotated[str, StripWhitespace(), Required(), Length(min=1, max=50)]
        email: Annotated[str, Email()]
        age: Annotated[Optional[int], Between(13, 120)] = None
"""

import re
from typing import Any, Dict, Optional, Pattern, Union

Number = Union[int, float]


# --- Validation rules ---

class Rule:
    """Base class for validation rule markers."""
    __slots__ = ('message',)

    rule: str = ""
    default_message: str = "The value is invalid"

    def __init__(self, message: Optional[str] = None):
        object.__setattr__(self, 'message', message)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def parameters(self) -> Dict[str, Any]:
        return {}

    def get_message(self) -> str:
        if self.message is not None:
            return self.message
        return self.default_message.format(**self.parameters())

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.parameters().items())
        return f"{type(self).__name__}({params})"

    def __eq__(self, other: object) -> bool:
        return (
            type(other) is type(self)
            and self.parameters() == other.parameters()
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, tuple(sorted(self.parameters().items(), key=lambda kv: kv[0])), self.message))


class Required(Rule):
    """Value must be present and non-empty (not None, "" or an empty collection)."""
    __slots__ = ()

    rule = "required"
    default_message = "This field is required"


class RequiredIf(Rule):
    """Required when the sibling ``field`` holds ``value`` in the input."""
    __slots__ = ('field', 'value')

    rule = "required_if"
    default_message = "This field is required when {field} is set"

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        super().__init__(message)
        object.__setattr__(self, 'field', field)
        object.__setattr__(self, 'value', value)

    def parameters(self) -> Dict[str, Any]:
        return {'field': self.field, 'value': self.value}

    def __hash__(self) -> int:
        return hash(('RequiredIf', self.field, repr(self.value), self.message))


class Min(Rule):
    """Numeric value >= min."""
    __slots__ = ('min',)

    rule = "min"
    default_message = "The value must be at least {min}"

    def __init__(self, min: Number, message: Optional[str] = None):
        super().__init__(message)
        object.__setattr__(self, 'min', min)

    def parameters(self) -> Dict[str, Any]:
        return {'min': self.min}


class Max(Rule):
    """Numeric value <= max."""
    __slots__ = ('max',)

    rule = "max"
    default_message = "The value must be at most {max}"

    def __init__(self, max: Number, message: Optional[str] = None):
        super().__init__(message)
        object.__setattr__(self, 'max', max)

    def parameters(self) -> Dict[str, Any]:
        return {'max': self.max}


class Between(Rule):
    """Numeric value within [min, max]."""
    __slots__ = ('min', 'max')

    rule = "between"
    default_message = "The value must be between {min} and {max}"

    def __init__(self, min: Number, max: Number, message: Optional[str] = None):
        super().__init__(message)
        object.__setattr__(self, 'min', min)
        object.__setattr__(self, 'max', max)

    def parameters(self) -> Dict[str, Any]:
        return {'min': self.min, 'max': self.max}


class Length(Rule):
    """String length within the given bounds (either bound may be omitted)."""
    __slots__ = ('min', 'max')

    rule = "length"

    def __init__(self, min: Optional[int] = None, max: Optional[int] = None, message: Optional[str] = None):
        if min is None and max is None:
            raise ValueError("Length requires at least one of min or max")
        super().__init__(message)
        object.__setattr__(self, 'min', min)
        object.__setattr__(self, 'max', max)

    def parameters(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if self.min is not None:
            params['min'] = self.min
        if self.max is not None:
            params['max'] = self.max
        return params

    def get_message(self) -> str:
        if self.message is not None:
            return self.message
        if self.min is not None and self.max is not None:
            return f"The length must be between {self.min} and {self.max} characters"
        if self.min is not None:
            return f"The length must be at least {self.min} characters"
        return f"The length must be at most {self.max} characters"


class Regex(Rule):
    """String must match ``pattern`` (re.search semantics)."""
    __slots__ = ('pattern', 'compiled')

    rule = "regex"
    default_message = "The value does not match the required pattern"

    def __init__(self, pattern: Union[str, Pattern[str]], message: Optional[str] = None):
        super().__init__(message)
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        object.__setattr__(self, 'pattern', compiled.pattern)
        object.__setattr__(self, 'compiled', compiled)

    def parameters(self) -> Dict[str, Any]:
        return {'pattern': self.pattern}


class Email(Rule):
    """String must be an email address."""
    __slots__ = ()

    rule = "email"
    default_message = "The value must be a valid email address"


class Url(Rule):
    """String must be an absolute URL."""
    __slots__ = ()

    rule = "url"
    default_message = "The value must be a valid URL"


class Valid(Rule):
    """Validate a nested record (or every record in a list with each_item=True)."""
    __slots__ = ('each_item',)

    rule = "valid"
    default_message = "The nested value is invalid"

    def __init__(self, each_item: bool = False, message: Optional[str] = None):
        super().__init__(message)
        object.__setattr__(self, 'each_item', each_item)

    def parameters(self) -> Dict[str, Any]:
        return {'each_item': self.each_item}


# --- Pipeline steps (applied to raw input before casting) ---

class PipelineStep:
    """Base class for input pre-processing steps."""
    __slots__ = ()

    def process(self, value: Any, prop: Any, context: Any) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self)

    def __hash__(self) -> int:
        return hash(type(self).__name__)


class StripWhitespace(PipelineStep):
    """Strip surrounding whitespace from strings."""
    __slots__ = ('chars',)

    def __init__(self, chars: Optional[str] = None):
        object.__setattr__(self, 'chars', chars)

    def process(self, value: Any, prop: Any, context: Any) -> Any:
        if isinstance(value, str):
            return value.strip(self.chars)
        return value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StripWhitespace) and self.chars == other.chars

    def __hash__(self) -> int:
        return hash(('StripWhitespace', self.chars))


class ToLower(PipelineStep):
    """Convert strings to lowercase."""
    __slots__ = ()

    def process(self, value: Any, prop: Any, context: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class ToUpper(PipelineStep):
    """Convert strings to uppercase."""
    __slots__ = ()

    def process(self, value: Any, prop: Any, context: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value


__all__ = [
    "Rule",
    "Required", "RequiredIf",
    "Min", "Max", "Between",
    "Length", "Regex", "Email", "Url",
    "Valid",
    "PipelineStep",
    "StripWhitespace", "ToLower", "ToUpper",
]
