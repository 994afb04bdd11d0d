"""
Mapper: resolves which source key feeds each property.

Key resolution order for a property is ``map_from``, then the
naming-strategy name, then the literal field name. When extracting, a
literal field-name hit in the source is checked first, then the resolved
primary key, then the strategy-derived alternate.

A property appears in the mapped result when its value is non-null or any
of its candidate keys is present in the source, so an explicit ``None``
is kept while an absent key is left out for the hydrator to default.

Example:
    from recordkit import Context, Mapper, MetaFactory, SnakeCaseStrategy

    meta = MetaFactory().create(User)
    ctx = Context(naming_strategy=SnakeCaseStrategy())
    Mapper().map({"first_name": "Ann"}, meta, ctx)   # {"firstName": "Ann"}
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .config import get_config_value
from .context import Context
from .meta import ClassMeta, PropertyMeta
from .naming import Direction

_ABSENT = object()


def resolve_naming_strategy(class_meta: ClassMeta, context: Optional[Context]) -> Any:
    """The call context's strategy, else the record type's configured one."""
    if context is not None and context.naming_strategy is not None:
        return context.naming_strategy
    return get_config_value(class_meta.attributes, 'naming_strategy')


class Mapper:

    def candidate_keys(self, prop: PropertyMeta, strategy: Any) -> Tuple[str, Optional[str]]:
        """(primary key, strategy alternate or None) for a property."""
        converted = strategy.convert(prop.name, Direction.TO_SOURCE) if strategy is not None else None
        if prop.map_from is not None:
            return prop.map_from, converted
        if converted is not None:
            return converted, None
        return prop.name, None

    def extract(self, source: Mapping[str, Any], prop: PropertyMeta, strategy: Any) -> Any:
        """Value for ``prop`` from ``source``, or the module's _ABSENT marker."""
        primary, alternate = self.candidate_keys(prop, strategy)
        for key in (prop.name, primary, alternate):
            if key is not None and key in source:
                return source[key]
        return _ABSENT

    def map(
        self,
        source: Mapping[str, Any],
        class_meta: ClassMeta,
        context: Optional[Context] = None,
    ) -> Dict[str, Any]:
        strategy = resolve_naming_strategy(class_meta, context)
        mapped: Dict[str, Any] = {}
        for name, prop in class_meta.properties.items():
            value = self.extract(source, prop, strategy)
            if value is _ABSENT:
                continue
            mapped[name] = value
        return mapped

    def missing_keys(
        self,
        source: Mapping[str, Any],
        class_meta: ClassMeta,
        context: Optional[Context] = None,
    ) -> List[str]:
        """Names of required properties none of whose candidate keys are in ``source``."""
        strategy = resolve_naming_strategy(class_meta, context)
        return [
            prop.name
            for prop in class_meta.required_properties()
            if self.extract(source, prop, strategy) is _ABSENT
        ]


__all__ = ["Mapper", "resolve_naming_strategy"]
