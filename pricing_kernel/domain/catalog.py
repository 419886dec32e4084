"""Catalog lookup -- unit cost and price of dishes, modifiers and equipment."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from pricing_kernel.domain.numeric import non_negative, optional_amount


@dataclass(frozen=True)
class CatalogItem:
    """
    Catalog defaults for one item.

    ``unit_price`` is None when the catalog has no sell price; callers
    then fall back to ``unit_cost``.
    """

    item_id: str
    unit_cost: Decimal
    unit_price: Decimal | None = None
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "item_id", str(self.item_id))
        object.__setattr__(self, "unit_cost", non_negative(self.unit_cost))
        object.__setattr__(self, "unit_price", optional_amount(self.unit_price))


@runtime_checkable
class CatalogLookup(Protocol):
    """
    Read-only catalog.

    ``get`` returns None for an unknown id and raises
    ``CatalogUnavailableError`` when the catalog itself cannot be read.
    """

    def get(self, item_id: str) -> CatalogItem | None:
        ...


class DictCatalog:
    """In-memory catalog keyed by item id."""

    def __init__(self, items: Iterable[CatalogItem] = ()):
        self._items: dict[str, CatalogItem] = {item.item_id: item for item in items}

    def get(self, item_id: str) -> CatalogItem | None:
        return self._items.get(str(item_id))

    def put(self, item: CatalogItem) -> None:
        """Insert or replace an item."""
        self._items[item.item_id] = item

    def __len__(self) -> int:
        return len(self._items)
