"""
Casting: converting raw input values to declared field types.

Casters are tried by descending priority; the first one whose ``supports``
accepts the (property, value) pair performs the cast. Ties keep
registration order.

Example:
    from recordkit import Caster, CasterRegistry, Context

    class MoneyCaster(Caster):
        def supports(self, prop, value):
            return prop.type.python_type is Money

        def cast(self, prop, value, context):
            return Money.parse(value)

    registry = CasterRegistry()
    registry.register(MoneyCaster(), priority=100)
"""

import datetime
import logging
import math
from typing import Any, List, Optional, Tuple

from .context import Context
from .exceptions import CastError, HydrationError, RecordError
from .meta import PropertyMeta

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({'true', '1', 'yes', 'on'})
_FALSE_STRINGS = frozenset({'false', '0', 'no', 'off', ''})


def _is_strict(context: Optional[Context]) -> bool:
    return context is not None and context.is_strict


class Caster:
    """Base class for casters."""

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        raise NotImplementedError

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PriorityRegistry:
    """Entries ordered by descending priority, ties by registration order."""

    kind = "entry"

    def __init__(self) -> None:
        self._entries: List[Tuple[int, int, Any]] = []
        self._sorted: Optional[List[Any]] = None

    def register(self, entry: Any, priority: int = 0) -> "PriorityRegistry":
        self._entries.append((priority, len(self._entries), entry))
        self._sorted = None
        logger.debug("Registered %s %r at priority %d", self.kind, entry, priority)
        return self

    def entries(self) -> List[Any]:
        if self._sorted is None:
            ordered = sorted(self._entries, key=lambda e: (-e[0], e[1]))
            self._sorted = [entry for _, _, entry in ordered]
        return list(self._sorted)

    def __len__(self) -> int:
        return len(self._entries)


class CasterRegistry(PriorityRegistry):

    kind = "caster"

    def casters(self) -> List[Caster]:
        return self.entries()

    def get(self, prop: PropertyMeta, value: Any) -> Optional[Caster]:
        for caster in self.entries():
            if caster.supports(prop, value):
                return caster
        return None

    def can_cast(self, prop: PropertyMeta, value: Any) -> bool:
        return self.get(prop, value) is not None

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context] = None) -> Any:
        caster = self.get(prop, value)
        if caster is None:
            raise CastError.no_caster_found(value, prop.type.name)
        return caster.cast(prop, value, context)


class ScalarCaster(Caster):
    """string / int / float / bool coercion.

    In strict mode only values that already have the exact type are
    accepted (an int is accepted for a float field).
    """

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return prop.type.is_scalar()

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        target = prop.type.name
        if _is_strict(context):
            return self._cast_strict(target, value)
        if target == 'string':
            return self._to_string(value)
        if target == 'int':
            return self._to_int(value)
        if target == 'float':
            return self._to_float(value)
        return self._to_bool(value)

    def _cast_strict(self, target: str, value: Any) -> Any:
        if target == 'string' and isinstance(value, str):
            return value
        if target == 'bool' and isinstance(value, bool):
            return value
        if target == 'int' and isinstance(value, int) and not isinstance(value, bool):
            return value
        if target == 'float' and isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise CastError.cannot_cast(value, target)

    def _to_string(self, value: Any) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        raise CastError.cannot_cast(value, 'string')

    def _to_int(self, value: Any) -> int:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if math.isfinite(value) and value.is_integer():
                return int(value)
            raise CastError.cannot_cast(value, 'int')
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                raise CastError.cannot_cast(value, 'int') from None
            if math.isfinite(number) and number.is_integer():
                return int(number)
        raise CastError.cannot_cast(value, 'int')

    def _to_float(self, value: Any) -> float:
        if isinstance(value, (bool, int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise CastError.cannot_cast(value, 'float') from None
        raise CastError.cannot_cast(value, 'float')

    def _to_bool(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise CastError.cannot_cast(value, 'bool')


class EnumCaster(Caster):
    """Enum member from a member, its value, or its name."""

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return prop.type.is_enum and prop.type.enum_class is not None

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        enum_class = prop.type.enum_class
        if isinstance(value, enum_class):
            return value
        try:
            return enum_class(value)
        except (ValueError, TypeError):
            pass
        if isinstance(value, str) and not _is_strict(context) and value in enum_class.__members__:
            return enum_class.__members__[value]
        raise CastError.invalid_enum_value(value, enum_class)


class DateTimeCaster(Caster):
    """datetime / date / time from instances, strings, or Unix timestamps.

    Strings are parsed with ``fmt`` (strptime) first when one is given,
    then as ISO 8601. Timestamps are interpreted as UTC.
    """

    def __init__(self, fmt: Optional[str] = None):
        self.fmt = fmt

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        return prop.type.is_datetime

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        target = prop.type.name
        parsed = self._parse(target, value)
        if target == 'date' and isinstance(parsed, datetime.datetime):
            return parsed.date()
        if target == 'time' and isinstance(parsed, datetime.datetime):
            return parsed.timetz()
        return parsed

    def _parse(self, target: str, value: Any) -> Any:
        if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            if target == 'datetime' and not isinstance(value, datetime.datetime):
                if isinstance(value, datetime.date):
                    return datetime.datetime(value.year, value.month, value.day)
                raise CastError.invalid_datetime_format(value, self.fmt)
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
            except (OverflowError, OSError, ValueError):
                raise CastError.invalid_datetime_format(value, self.fmt) from None
        if not isinstance(value, str):
            raise CastError.cannot_cast(value, target)
        text = value.strip()
        if self.fmt:
            try:
                return datetime.datetime.strptime(text, self.fmt)
            except ValueError:
                pass
        iso = text[:-1] + '+00:00' if text.endswith(('Z', 'z')) else text
        parsers = {
            'datetime': datetime.datetime.fromisoformat,
            'date': datetime.date.fromisoformat,
            'time': datetime.time.fromisoformat,
        }
        try:
            return parsers[target](iso)
        except ValueError:
            pass
        if target == 'date':
            try:
                return datetime.datetime.fromisoformat(iso)
            except ValueError:
                pass
        raise CastError.invalid_datetime_format(value, self.fmt)


class ArrayOfCaster(Caster):
    """Casts each element of a typed array through the registry."""

    def __init__(self, registry: CasterRegistry):
        self.registry = registry

    def supports(self, prop: PropertyMeta, value: Any) -> bool:
        if not prop.type.is_typed_array() or prop.type.contains_records():
            return False
        return isinstance(value, (list, tuple, set, frozenset))

    def cast(self, prop: PropertyMeta, value: Any, context: Optional[Context]) -> Any:
        item_prop = prop.for_item()
        errors: List[RecordError] = []
        items: List[Any] = []
        for index, item in enumerate(value):
            try:
                items.append(self._cast_item(item_prop, item, context))
            except RecordError as e:
                errors.append(e.prepend_path(str(index)))
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise HydrationError.from_errors(f"Failed to cast items of '{prop.name}'", errors)
        container = prop.type.python_type
        if container in (set, frozenset, tuple):
            return container(items)
        return items

    def _cast_item(self, item_prop: PropertyMeta, item: Any, context: Optional[Context]) -> Any:
        if item is None:
            if item_prop.type.accepts_null():
                return None
            raise CastError.cannot_cast(item, item_prop.type.name)
        if item_prop.type.name == 'any':
            return item
        caster = self.registry.get(item_prop, item)
        if caster is not None:
            return caster.cast(item_prop, item, context)
        python_type = item_prop.type.python_type
        if isinstance(python_type, type) and isinstance(item, python_type):
            return item
        raise CastError.no_caster_found(item, item_prop.type.name)


__all__ = [
    "Caster",
    "PriorityRegistry",
    "CasterRegistry",
    "ScalarCaster",
    "EnumCaster",
    "DateTimeCaster",
    "ArrayOfCaster",
]
