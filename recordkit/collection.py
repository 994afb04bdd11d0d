"""
Typed collections of hydrated records.

DataCollection hydrates every element of an iterable into the record type.
PaginatedCollection additionally carries pagination metadata read from any
paginator-shaped object: one exposing callable ``items()`` and ``total()``
(plus optional ``current_page()``, ``per_page()``, ``last_page()`` and URL
helpers).

Example:
    from recordkit import collect

    users = collect(User, [{"name": "Ann"}, {"name": "Bob"}])
    users.first().name      # "Ann"
    users.wrap("users").to_data()   # {"users": [{"name": "Ann"}, {"name": "Bob"}]}

    page = collect(User, paginator)
    page.to_data()   # {"data": [...], "meta": {"current_page": 1, ...}, "links": {...}}
"""

import logging
import math
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from .context import DEFAULT_CONTEXT, Context
from .defaults import get_default_engine
from .engine import Engine, encode_json
from .exceptions import HydrationError, RecordError

logger = logging.getLogger(__name__)


def is_paginator(source: Any) -> bool:
    """Structural check: callable items() and total(), and not a mapping."""
    if isinstance(source, Mapping):
        return False
    return callable(getattr(source, 'items', None)) and callable(getattr(source, 'total', None))


def _optional_call(source: Any, name: str, *args: Any) -> Any:
    method = getattr(source, name, None)
    if callable(method):
        return method(*args)
    return None


class DataCollection:
    """An ordered, typed list of records."""

    def __init__(
        self,
        record_type: type,
        items: Iterable[Any] = (),
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
        wrap_key: Optional[str] = None,
    ):
        if isinstance(items, (Mapping, str, bytes)):
            raise HydrationError(f"Expected an iterable of items, got {type(items).__name__}")
        self.record_type = record_type
        self.context = context or DEFAULT_CONTEXT
        self.engine = engine if engine is not None else get_default_engine()
        self.wrap_key = wrap_key
        self._items: List[Any] = self._hydrate_all(items)

    def _hydrate_all(self, items: Iterable[Any]) -> List[Any]:
        hydrated: List[Any] = []
        errors: List[RecordError] = []
        for index, item in enumerate(items):
            if isinstance(item, self.record_type):
                hydrated.append(item)
                continue
            try:
                hydrated.append(self.engine.hydrate(self.record_type, item, self.context))
            except HydrationError as e:
                errors.extend(sub.prepend_path(str(index)) for sub in (e.errors or [e]))
            except RecordError as e:
                errors.append(e.prepend_path(str(index)))
        if errors:
            raise HydrationError.from_errors(
                f"Failed to hydrate collection of {self.record_type.__name__}", errors,
            )
        return hydrated

    def _copy(self, **changes: Any) -> "DataCollection":
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone.__dict__.update(changes)
        return clone

    # --- Sequence protocol ---

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.record_type.__name__}, count={len(self._items)})"

    def count(self) -> int:
        return len(self._items)

    def all(self) -> List[Any]:
        return list(self._items)

    def first(self) -> Any:
        return self._items[0] if self._items else None

    def last(self) -> Any:
        return self._items[-1] if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    # --- Configuration ---

    def wrap(self, key: Optional[str]) -> "DataCollection":
        return self._copy(wrap_key=key)

    def with_context(self, context: Context) -> "DataCollection":
        return self._copy(context=context)

    # --- Output ---

    def _item_context(self, context: Optional[Context]) -> Context:
        context = context or self.context
        # wrapping applies to the collection, never to each element
        return context.with_serialization(context.serialization.with_wrap(None))

    def _wrap_key(self, context: Optional[Context]) -> Optional[str]:
        return self.wrap_key or (context or self.context).serialization.wrap

    def to_list(self, context: Optional[Context] = None) -> List[Dict[str, Any]]:
        item_context = self._item_context(context)
        return [self.engine.normalize(item, item_context) for item in self._items]

    def to_data(self, context: Optional[Context] = None) -> Any:
        items = self.to_list(context)
        key = self._wrap_key(context)
        if key:
            return {key: items}
        return items

    def to_json(self, context: Optional[Context] = None, indent: Optional[int] = None) -> str:
        return encode_json(self.to_data(context), indent=indent)


class PaginatedCollection(DataCollection):
    """A DataCollection for one page of a larger result set."""

    def __init__(
        self,
        record_type: type,
        items: Iterable[Any] = (),
        total: int = 0,
        per_page: Optional[int] = None,
        current_page: int = 1,
        last_page: Optional[int] = None,
        links: Optional[Dict[str, Any]] = None,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
        wrap_key: Optional[str] = None,
    ):
        super().__init__(record_type, items, context=context, engine=engine, wrap_key=wrap_key)
        self.total = total
        self.per_page = per_page if per_page is not None else len(self._items)
        self.current_page = current_page
        if last_page is None:
            last_page = max(1, math.ceil(total / self.per_page)) if self.per_page else 1
        self.last_page = last_page
        self.links = links

    @classmethod
    def from_paginator(
        cls,
        record_type: type,
        paginator: Any,
        context: Optional[Context] = None,
        engine: Optional[Engine] = None,
    ) -> "PaginatedCollection":
        if not is_paginator(paginator):
            raise HydrationError(f"{type(paginator).__name__} is not a paginator")
        current_page = _optional_call(paginator, 'current_page') or 1
        last_page = _optional_call(paginator, 'last_page')
        links = None
        if callable(getattr(paginator, 'url', None)):
            links = {
                'first': paginator.url(1),
                'last': paginator.url(last_page) if last_page else None,
                'prev': _optional_call(paginator, 'previous_page_url'),
                'next': _optional_call(paginator, 'next_page_url'),
            }
        return cls(
            record_type,
            list(paginator.items()),
            total=paginator.total(),
            per_page=_optional_call(paginator, 'per_page'),
            current_page=current_page,
            last_page=last_page,
            links=links,
            context=context,
            engine=engine,
        )

    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    def meta(self) -> Dict[str, Any]:
        return {
            'current_page': self.current_page,
            'per_page': self.per_page,
            'total': self.total,
            'last_page': self.last_page,
        }

    def to_data(self, context: Optional[Context] = None) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            self._wrap_key(context) or 'data': self.to_list(context),
            'meta': self.meta(),
        }
        if self.links is not None:
            data['links'] = self.links
        return data


def collect(
    record_type: type,
    source: Any,
    context: Optional[Context] = None,
    engine: Optional[Engine] = None,
) -> DataCollection:
    """PaginatedCollection for paginator-shaped sources, else DataCollection."""
    if is_paginator(source):
        return PaginatedCollection.from_paginator(record_type, source, context=context, engine=engine)
    return DataCollection(record_type, source, context=context, engine=engine)


__all__ = ["DataCollection", "PaginatedCollection", "collect", "is_paginator"]
