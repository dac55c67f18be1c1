"""Local copies of the shared inventory and bill log.

Learn: Readers (renderers, the CLI) only ever see tuples from `snapshot()`.
The underscore methods are the write path and are called by the Reconciler
alone, which keeps a single writer without any locking: everything runs on
one event loop and each merge runs to completion.
"""

from typing import Iterable, Optional

from stocksync.realtime.protocol import Bill, InventoryItem


class InventoryStore:
    """Items in insertion order, unique by id."""

    def __init__(self, items: Iterable[InventoryItem] = ()):
        self._items: list[InventoryItem] = []
        self._reset(items)

    def snapshot(self) -> tuple[InventoryItem, ...]:
        return tuple(self._items)

    def get(self, item_id: int) -> Optional[InventoryItem]:
        index = self._index_of(item_id)
        return None if index is None else self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return any(item.id == item_id for item in self._items)

    def _index_of(self, item_id: int) -> Optional[int]:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return None

    def _insert(self, item: InventoryItem) -> bool:
        if self._index_of(item.id) is not None:
            return False
        self._items.append(item)
        return True

    def _replace(self, item: InventoryItem) -> Optional[InventoryItem]:
        index = self._index_of(item.id)
        if index is None:
            return None
        previous = self._items[index]
        self._items[index] = item
        return previous

    def _remove(self, item_id: int) -> Optional[InventoryItem]:
        index = self._index_of(item_id)
        if index is None:
            return None
        return self._items.pop(index)

    def _reset(self, items: Iterable[InventoryItem]) -> None:
        # Last occurrence of a duplicated id wins, position of the first is kept.
        ordered: dict[int, InventoryItem] = {}
        for item in items:
            ordered[item.id] = item
        self._items = list(ordered.values())


class BillLog:
    """Bills newest first, unique by id."""

    def __init__(self, bills: Iterable[Bill] = ()):
        self._bills: list[Bill] = []
        for bill in bills:
            if bill.id not in self:
                self._bills.append(bill)

    def snapshot(self) -> tuple[Bill, ...]:
        return tuple(self._bills)

    def get(self, bill_id: int) -> Optional[Bill]:
        for bill in self._bills:
            if bill.id == bill_id:
                return bill
        return None

    def __len__(self) -> int:
        return len(self._bills)

    def __contains__(self, bill_id: object) -> bool:
        return any(bill.id == bill_id for bill in self._bills)

    def _prepend(self, bill: Bill) -> bool:
        if bill.id in self:
            return False
        self._bills.insert(0, bill)
        return True

    def _merge(self, bills: Iterable[Bill]) -> int:
        """Add unseen bills, then restore newest-first by id. Returns count added."""
        added = 0
        for bill in bills:
            if bill.id not in self:
                self._bills.append(bill)
                added += 1
        if added:
            self._bills.sort(key=lambda b: b.id, reverse=True)
        return added


class SyncStore:
    """The pair of collections a terminal keeps in memory."""

    def __init__(
        self,
        inventory: Iterable[InventoryItem] = (),
        bills: Iterable[Bill] = (),
    ):
        self.inventory = InventoryStore(inventory)
        self.bills = BillLog(bills)
