"""
Per-call configuration for recordkit.

A Context is an immutable bundle passed by reference through one hydrate or
normalize call tree. Use the ``with_*`` methods to derive a modified copy.

Example:
    from recordkit import Context, SnakeCaseStrategy, SerializationOptions

    ctx = Context(naming_strategy=SnakeCaseStrategy())
    strict = ctx.with_cast_mode("strict")
    public = ctx.with_serialization(SerializationOptions(exclude={"internal_id"}))
"""

from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from typing_extensions import Literal

CastMode = Literal['loose', 'strict', 'permissive']

_CAST_MODES = ('loose', 'strict', 'permissive')


def _frozen(names: Optional[Iterable[str]]) -> Optional[FrozenSet[str]]:
    if names is None:
        return None
    return frozenset(names)


class SerializationOptions:
    """Output filtering for normalization.

    ``include_lazy`` selects ComputesLazy values: None for none, an empty
    iterable for all, otherwise the listed names.
    """
    __slots__ = ('only', 'exclude', 'exclude_none', 'max_depth', 'wrap', 'include_lazy')

    def __init__(
        self,
        only: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        exclude_none: bool = False,
        max_depth: int = 10,
        wrap: Optional[str] = None,
        include_lazy: Optional[Iterable[str]] = None,
    ):
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        object.__setattr__(self, 'only', _frozen(only))
        object.__setattr__(self, 'exclude', _frozen(exclude) or frozenset())
        object.__setattr__(self, 'exclude_none', exclude_none)
        object.__setattr__(self, 'max_depth', max_depth)
        object.__setattr__(self, 'wrap', wrap)
        object.__setattr__(self, 'include_lazy', _frozen(include_lazy))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("SerializationOptions is immutable")

    def should_include(self, name: str) -> bool:
        if self.only is not None and name not in self.only:
            return False
        return name not in self.exclude

    def should_include_lazy(self, name: str) -> bool:
        if self.include_lazy is None:
            return False
        return not self.include_lazy or name in self.include_lazy

    def can_descend(self, depth: int) -> bool:
        return depth < self.max_depth

    def _replace(self, **changes: Any) -> "SerializationOptions":
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return SerializationOptions(**values)

    def with_only(self, only: Optional[Iterable[str]]) -> "SerializationOptions":
        return self._replace(only=only)

    def with_exclude(self, exclude: Iterable[str]) -> "SerializationOptions":
        return self._replace(exclude=exclude)

    def with_exclude_none(self, exclude_none: bool = True) -> "SerializationOptions":
        return self._replace(exclude_none=exclude_none)

    def with_max_depth(self, max_depth: int) -> "SerializationOptions":
        return self._replace(max_depth=max_depth)

    def with_wrap(self, wrap: Optional[str]) -> "SerializationOptions":
        return self._replace(wrap=wrap)

    def with_include_lazy(self, names: Optional[Iterable[str]] = ()) -> "SerializationOptions":
        return self._replace(include_lazy=names)

    def __repr__(self) -> str:
        return (
            f"SerializationOptions(only={self.only!r}, exclude={self.exclude!r}, "
            f"exclude_none={self.exclude_none!r}, max_depth={self.max_depth!r}, wrap={self.wrap!r}, "
            f"include_lazy={self.include_lazy!r})"
        )


class Context:
    """Immutable per-call configuration.

    ``custom`` carries caller options for custom casters, validators and
    transformers; it is exposed as a read-only mapping.
    """
    __slots__ = ('naming_strategy', 'validate', 'cast_mode', 'serialization', 'custom')

    def __init__(
        self,
        naming_strategy: Any = None,
        validate: bool = True,
        cast_mode: CastMode = 'loose',
        serialization: Optional[SerializationOptions] = None,
        custom: Optional[Mapping[str, Any]] = None,
    ):
        if cast_mode not in _CAST_MODES:
            raise ValueError(f"cast_mode must be one of {_CAST_MODES}, got {cast_mode!r}")
        object.__setattr__(self, 'naming_strategy', naming_strategy)
        object.__setattr__(self, 'validate', validate)
        object.__setattr__(self, 'cast_mode', cast_mode)
        object.__setattr__(self, 'serialization', serialization or SerializationOptions())
        object.__setattr__(self, 'custom', MappingProxyType(dict(custom or {})))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Context is immutable")

    @property
    def is_strict(self) -> bool:
        return self.cast_mode == 'strict'

    @property
    def is_permissive(self) -> bool:
        return self.cast_mode == 'permissive'

    def get(self, key: str, default: Any = None) -> Any:
        return self.custom.get(key, default)

    def _replace(self, **changes: Any) -> "Context":
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return Context(**values)

    def with_naming_strategy(self, strategy: Any) -> "Context":
        return self._replace(naming_strategy=strategy)

    def with_validation(self, enabled: bool = True) -> "Context":
        return self._replace(validate=enabled)

    def with_cast_mode(self, cast_mode: CastMode) -> "Context":
        return self._replace(cast_mode=cast_mode)

    def with_serialization(self, options: SerializationOptions) -> "Context":
        return self._replace(serialization=options)

    def with_custom(self, **options: Any) -> "Context":
        merged = dict(self.custom)
        merged.update(options)
        return self._replace(custom=merged)

    def __repr__(self) -> str:
        return (
            f"Context(naming_strategy={self.naming_strategy!r}, validate={self.validate!r}, "
            f"cast_mode={self.cast_mode!r})"
        )


DEFAULT_CONTEXT = Context()


__all__ = ["Context", "SerializationOptions", "CastMode", "DEFAULT_CONTEXT"]
