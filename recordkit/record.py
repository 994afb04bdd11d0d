"""
Record base class for recordkit.

Subclass Record and declare fields with annotations. Records are built from
loose input through the engine (``from_data``, ``from_json``,
``from_object``) and turned back into plain data with ``to_dict`` and
``to_json``. The keyword constructor takes already-typed values and does
not cast or validate.

Example:
    from typing import Annotated, List, Optional
    from recordkit import Record, Field, Required, Length, RecordConfig

    class Post(Record):
        title: Annotated[str, Required(), Length(max=120)]
        tags: List[str] = Field(default_factory=list)
        author_token: Annotated[Optional[str], Field(hidden=True)] = None

    post = Post.from_data({"title": "Hello", "tags": ["a"]})
    assert post.to_dict() == {"title": "Hello", "tags": ["a"]}

    post.update({"title": "Hello again"})
    post.set("tags", ["b"])

    class Frozen(Record):
        record_config = RecordConfig(frozen=True)
        id: int
"""

from typing import Any, ClassVar, Dict, Iterable, Iterator, Mapping, Optional, Tuple, TypeVar

from .collection import collect
from .config import RecordConfig, get_config_value
from .context import Context
from .defaults import get_default_engine
from .engine import Engine, encode_json
from .exceptions import HydrationError
from .meta import ClassMeta

_T = TypeVar('_T', bound='Record')


def _engine(engine: Optional[Engine]) -> Engine:
    return engine if engine is not None else get_default_engine()


class Record:
    """Base class for hydratable records.

    Class-level configuration goes in ``record_config`` (a RecordConfig).
    A frozen record rejects attribute assignment with TypeError and
    ``set``/``update`` with HydrationError.
    """

    __recordkit_record__: ClassVar[bool] = True
    record_config: ClassVar[Optional[RecordConfig]] = None

    def __init__(self, **kwargs: Any) -> None:
        cls = type(self)
        meta = cls.record_meta()

        unknown = [name for name in kwargs if name not in meta.properties]
        if unknown:
            raise TypeError(f"{cls.__name__}() got unexpected keyword argument(s): {', '.join(unknown)}")

        missing = []
        for name, prop in meta.properties.items():
            if name in kwargs:
                value = kwargs[name]
            elif prop.has_default:
                value = prop.get_default()
            elif prop.type.is_nullable:
                value = None
            else:
                missing.append(name)
                continue
            object.__setattr__(self, name, value)

        if missing:
            raise TypeError(f"{cls.__name__}() missing required keyword argument(s): {', '.join(missing)}")

    # --- Metadata ---

    @classmethod
    def record_meta(cls, engine: Optional[Engine] = None) -> ClassMeta:
        return _engine(engine).meta_factory.create(cls)

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(cls.record_meta().properties)

    # --- Construction from loose input ---

    @classmethod
    def from_data(
        cls,
        data: Mapping[str, Any],
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> Any:
        """Hydrate from a mapping."""
        return _engine(engine).hydrate(cls, data, context)

    @classmethod
    def from_json(
        cls,
        text: Any,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> Any:
        """Hydrate from JSON text (str or bytes) holding an object."""
        if not isinstance(text, (str, bytes, bytearray)):
            raise HydrationError(f"Expected JSON text, got {type(text).__name__}")
        return _engine(engine).hydrate(cls, text, context)

    @classmethod
    def from_object(
        cls,
        obj: Any,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> Any:
        """Hydrate from another object's public attributes."""
        return _engine(engine).hydrate(cls, obj, context)

    @classmethod
    def from_partial(
        cls,
        data: Any,
        fields: Iterable[str],
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> Any:
        """Hydrate only the named fields; the rest take their defaults."""
        return _engine(engine).hydrate_partial(cls, data, fields, context)

    @classmethod
    def collection(
        cls,
        items: Any,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> Any:
        """DataCollection (or PaginatedCollection for paginator input) of this type."""
        return collect(cls, items, context=context, engine=engine)

    # --- Output ---

    def to_dict(self, context: Optional[Context] = None, engine: Optional[Engine] = None) -> Dict[str, Any]:
        return _engine(engine).normalize(self, context)

    def to_json(
        self,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
        indent: Optional[int] = None,
    ) -> str:
        return encode_json(self.to_dict(context, engine), indent=indent)

    # --- Copies and comparison ---

    def _values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in type(self).record_meta().properties}

    def with_(self: _T, **changes: Any) -> _T:
        """Copy of this record with ``changes`` applied; the original is untouched."""
        meta = type(self).record_meta()
        for name in changes:
            if name not in meta.properties:
                raise HydrationError(f"Unknown field '{name}' on {meta.type_name}", path=name)
        values = self._values()
        values.update(changes)
        return type(self)(**values)

    def diff(self, other: "Record") -> Dict[str, Tuple[Any, Any]]:
        """Fields whose values differ, as name -> (self value, other value)."""
        if type(other) is not type(self):
            raise TypeError(f"Cannot diff {type(self).__name__} with {type(other).__name__}")
        mine = self._values()
        theirs = other._values()
        return {name: (mine[name], theirs[name]) for name in mine if mine[name] != theirs[name]}

    def merge(self: _T, other: "Record", deep: bool = False) -> _T:
        """Copy of this record with ``other``'s non-None values laid over it.

        With ``deep``, nested records of the same type and dicts are merged
        key by key instead of replaced.
        """
        if type(other) is not type(self):
            raise TypeError(f"Cannot merge {type(other).__name__} into {type(self).__name__}")
        values = self._values()
        for name, value in other._values().items():
            if value is None:
                continue
            values[name] = _merge_value(values[name], value) if deep else value
        return type(self)(**values)

    # --- Mutation ---

    def set(self: _T, name: str, value: Any) -> _T:
        """Assign one declared field; see update()."""
        return self.update({name: value})

    def update(self: _T, patch: Mapping[str, Any]) -> _T:
        """Assign several declared fields at once.

        All-or-nothing: every key is checked (declared, writable, record
        not frozen) before any value is written. A failing key raises
        HydrationError with the key as its path and leaves the record
        unchanged. Values are stored as given, without casting.
        """
        meta = type(self).record_meta()
        for name in patch:
            if name not in meta.properties:
                raise HydrationError(f"Unknown field '{name}' on {meta.type_name}", path=name)
            if meta.is_readonly or meta.properties[name].is_readonly:
                raise HydrationError(f"Field '{name}' of {meta.type_name} is read-only", path=name)
        for name, value in patch.items():
            object.__setattr__(self, name, value)
        return self

    def __setattr__(self, name: str, value: Any) -> None:
        """Set attribute with frozen support."""
        cls = type(self)
        if get_config_value(cls.record_config, 'frozen', False):
            raise TypeError(f"{cls.__name__} is frozen and does not support item assignment")
        prop = cls.record_meta().get_property(name)
        if prop is not None and prop.is_readonly:
            raise TypeError(f"Field '{name}' is frozen and cannot be modified")
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        """Delete attribute (blocked if frozen)."""
        cls = type(self)
        if get_config_value(cls.record_config, 'frozen', False):
            raise TypeError(f"{cls.__name__} is frozen and does not support item deletion")
        object.__delattr__(self, name)

    # --- Dunder protocol ---

    def __repr__(self) -> str:
        parts = [f"{name}={value!r}" for name, value in self._values().items()]
        return f"{type(self).__name__}({', '.join(parts)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._values() == other._values()

    def __hash__(self) -> int:
        try:
            return hash((type(self), tuple(self._values().items())))
        except TypeError:
            # Unhashable values in the record
            raise TypeError(f"unhashable type: '{type(self).__name__}'") from None

    def __iter__(self) -> Iterator[str]:
        """Iterate over field names."""
        return iter(type(self).record_meta().properties)

    def __getitem__(self, key: str) -> Any:
        """Get field value by name (dict-like access)."""
        if key in type(self).record_meta().properties:
            return getattr(self, key)
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        """Check if field exists."""
        return key in type(self).record_meta().properties


def _merge_value(current: Any, incoming: Any) -> Any:
    if isinstance(current, Record) and type(current) is type(incoming):
        return current.merge(incoming, deep=True)
    if isinstance(current, dict) and isinstance(incoming, dict):
        merged = dict(current)
        for key, value in incoming.items():
            merged[key] = _merge_value(merged[key], value) if key in merged else value
        return merged
    return incoming


__all__ = ["Record"]
