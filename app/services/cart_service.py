from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.schemas import ZERO, CatalogItem, LineItem, round_money


@dataclass
class CartEntry:
    item: CatalogItem
    quantity: int = 1

    @property
    def subtotal(self) -> Decimal:
        return round_money(self.item.unit_price * self.quantity)


class CartStore:
    """Selected catalog items and quantities for one shopping session.

    Entries never hold a quantity below one; lowering a quantity to zero or
    less removes the entry.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CartEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._entries

    def add(self, item: CatalogItem) -> None:
        if item.id in self._entries:
            return
        self._entries[item.id] = CartEntry(item=item, quantity=1)

    def set_quantity(self, item_id: str, new_quantity: int) -> None:
        entry = self._entries.get(item_id)
        if entry is None:
            return
        if new_quantity > 0:
            entry.quantity = new_quantity
        else:
            del self._entries[item_id]

    def remove(self, item_id: str) -> None:
        self._entries.pop(item_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> list[CartEntry]:
        return list(self._entries.values())

    def quantity_of(self, item_id: str) -> int:
        entry = self._entries.get(item_id)
        return entry.quantity if entry else 0

    def total(self) -> Decimal:
        return round_money(sum((entry.item.unit_price * entry.quantity for entry in self._entries.values()), ZERO))

    def snapshot(self) -> tuple[LineItem, ...]:
        return tuple(LineItem(item=entry.item, quantity=entry.quantity) for entry in self._entries.values())
