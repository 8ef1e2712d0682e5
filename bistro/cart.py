"""
Cart

In-memory quantity ledger keyed by (item id, plate size). Lines hold a
snapshot of the item taken when the line was created, so later menu edits
do not reprice a cart that is still open. The cart is never written to the
store; it is cleared when checkout completes.
"""

import logging
from typing import Callable, Optional, Union

from bistro.schemas import CartLine, MenuItem, PersistedId, PlateSize, TemporaryId

logger = logging.getLogger(__name__)

ItemKey = Union[TemporaryId, PersistedId]
ItemLookup = Callable[[ItemKey], Optional[MenuItem]]


class Cart:
    def __init__(self, item_lookup: ItemLookup):
        self._lookup = item_lookup
        self._lines: dict[tuple[ItemKey, PlateSize], CartLine] = {}

    def increment(self, item_id: ItemKey, size: PlateSize, delta: int = 1) -> int:
        """
        Apply `delta` to the (item, size) line and return the new quantity.

        A missing line is created only for a positive delta, with
        quantity = delta. Quantities floor at 0 and a line at 0 is removed.
        """
        key = (item_id, size)
        line = self._lines.get(key)

        if line is None:
            if delta <= 0:
                return 0
            item = self._lookup(item_id)
            if item is None:
                logger.warning(f"Cart: unknown item {item_id}, ignoring")
                return 0
            self._lines[key] = CartLine(item=item, quantity=delta, size=size)
            logger.debug(f"Cart: added {item.name} ({size.value}) x{delta}")
            return delta

        quantity = max(0, line.quantity + delta)
        if quantity == 0:
            del self._lines[key]
            logger.debug(f"Cart: removed {line.item.name} ({size.value})")
        else:
            self._lines[key] = line.model_copy(update={"quantity": quantity})
        return quantity

    def get_quantity(self, item_id: ItemKey, size: PlateSize) -> int:
        line = self._lines.get((item_id, size))
        return line.quantity if line else 0

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def subtotal(self) -> float:
        return sum(line.subtotal for line in self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def rekey(self, old_id: ItemKey, new_id: ItemKey) -> None:
        """Move lines of a dish that just got its store id; order and prices are kept."""
        lines: dict[tuple[ItemKey, PlateSize], CartLine] = {}
        for (item_id, size), line in self._lines.items():
            if item_id == old_id:
                line = line.model_copy(update={"item": line.item.model_copy(update={"id": new_id})})
                item_id = new_id
            existing = lines.get((item_id, size))
            if existing is not None:
                line = existing.model_copy(update={"quantity": existing.quantity + line.quantity})
            lines[(item_id, size)] = line
        self._lines = lines

    def snapshot(self) -> tuple[CartLine, ...]:
        return tuple(self._lines.values())

    def clear(self) -> None:
        self._lines.clear()
