"""
Tests for DataCollection, PaginatedCollection and collect().
"""

import json
from typing import Optional

import pytest

from recordkit import (
    Context, DataCollection, HydrationError, PaginatedCollection, Record,
    SerializationOptions, collect, is_paginator,
)


class Item(Record):
    name: str
    price: Optional[float] = None


class Paginator:
    """Minimal paginator shape: items() and total(), plus page helpers."""

    def __init__(self, rows, total, page=1, per_page=2, base="/items"):
        self._rows = rows
        self._total = total
        self._page = page
        self._per_page = per_page
        self._base = base

    def items(self):
        return self._rows

    def total(self):
        return self._total

    def current_page(self):
        return self._page

    def per_page(self):
        return self._per_page

    def url(self, page):
        return f"{self._base}?page={page}"

    def next_page_url(self):
        return self.url(self._page + 1)

    def previous_page_url(self):
        return None


class BarePaginator:
    def __init__(self, rows, total):
        self._rows = rows
        self._total = total

    def items(self):
        return self._rows

    def total(self):
        return self._total


# ============================================================
# Test: DataCollection
# ============================================================

class TestDataCollection:
    """Typed, ordered lists of hydrated records."""

    def test_hydrates_each_item(self):
        items = DataCollection(Item, [{"name": "Pen", "price": "1.5"}, '{"name": "Ink"}'])
        assert len(items) == 2
        assert items[0].price == 1.5
        assert [i.name for i in items] == ["Pen", "Ink"]

    def test_accessors(self):
        items = collect(Item, [{"name": "a"}, {"name": "b"}, {"name": "c"}])
        assert items.count() == 3
        assert items.first().name == "a"
        assert items.last().name == "c"
        assert [i.name for i in items.all()] == ["a", "b", "c"]
        assert not items.is_empty()

    def test_empty(self):
        items = collect(Item, [])
        assert items.is_empty()
        assert items.first() is None
        assert items.last() is None
        assert items.to_data() == []

    def test_existing_instances_kept(self):
        pen = Item(name="Pen")
        assert collect(Item, [pen])[0] is pen

    def test_accepts_generators(self):
        items = collect(Item, ({"name": n} for n in "xy"))
        assert [i.name for i in items] == ["x", "y"]

    def test_errors_carry_item_index(self):
        with pytest.raises(HydrationError) as exc_info:
            collect(Item, [{"name": "ok"}, {}, {"name": "x", "price": "free"}])
        assert exc_info.value.paths() == ["1.name", "2.price"]

    @pytest.mark.parametrize("source", [{"name": "Pen"}, "Pen", b"Pen"])
    def test_rejects_non_iterables_of_items(self, source):
        with pytest.raises(HydrationError):
            DataCollection(Item, source)


# ============================================================
# Test: Output
# ============================================================

class TestCollectionOutput:
    """to_list / to_data / to_json, with and without wrapping."""

    def test_to_list(self):
        items = collect(Item, [{"name": "Pen"}])
        assert items.to_list() == [{"name": "Pen", "price": None}]

    def test_wrap_returns_copy(self):
        items = collect(Item, [{"name": "Pen"}])
        wrapped = items.wrap("items")
        assert wrapped.to_data() == {"items": [{"name": "Pen", "price": None}]}
        assert items.to_data() == [{"name": "Pen", "price": None}]

    def test_context_wrap_applies_to_collection_only(self):
        context = Context(serialization=SerializationOptions(wrap="items", exclude_none=True))
        items = collect(Item, [{"name": "Pen"}])
        assert items.to_data(context) == {"items": [{"name": "Pen"}]}

    def test_with_context(self):
        context = Context(serialization=SerializationOptions(only={"name"}))
        items = collect(Item, [{"name": "Pen", "price": 2}]).with_context(context)
        assert items.to_list() == [{"name": "Pen"}]

    def test_to_json(self):
        items = collect(Item, [{"name": "Pen"}]).wrap("data")
        assert json.loads(items.to_json()) == {"data": [{"name": "Pen", "price": None}]}


# ============================================================
# Test: Pagination
# ============================================================

class TestPagination:
    """Paginator-shaped sources produce a PaginatedCollection."""

    def test_is_paginator(self):
        assert is_paginator(Paginator([], 0))
        assert not is_paginator({"items": [], "total": 0})
        assert not is_paginator([1, 2])

    def test_collect_detects_paginator(self):
        page = collect(Item, Paginator([{"name": "a"}, {"name": "b"}], total=5))
        assert isinstance(page, PaginatedCollection)
        assert page.total == 5
        assert page.last_page == 3
        assert page.has_more_pages()

    def test_to_data(self):
        page = collect(Item, Paginator([{"name": "a"}, {"name": "b"}], total=5, page=3))
        data = page.to_data()
        assert data["data"] == [{"name": "a", "price": None}, {"name": "b", "price": None}]
        assert data["meta"] == {"current_page": 3, "per_page": 2, "total": 5, "last_page": 3}
        assert data["links"] == {
            "first": "/items?page=1",
            "last": None,
            "prev": None,
            "next": "/items?page=4",
        }
        assert not page.has_more_pages()

    def test_bare_paginator(self):
        page = collect(Item, BarePaginator([{"name": "a"}], total=3))
        assert page.per_page == 1
        assert page.current_page == 1
        assert page.last_page == 3
        assert "links" not in page.to_data()

    def test_wrapped_page(self):
        page = collect(Item, BarePaginator([{"name": "a"}], total=1)).wrap("items")
        assert list(page.to_data()) == ["items", "meta"]

    def test_record_collection_classmethod(self):
        page = Item.collection(BarePaginator([], total=0))
        assert isinstance(page, PaginatedCollection)
        assert page.last_page == 1

    def test_from_paginator_rejects_other_objects(self):
        with pytest.raises(HydrationError):
            PaginatedCollection.from_paginator(Item, [1, 2])
