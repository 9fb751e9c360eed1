import threading
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from typing import ContextManager, Iterator, Protocol

from smartstock.ledger.types import LedgerTransaction
from smartstock.ledger.units import ItemSnapshot


class ItemRegistry(Protocol):
    def get(self, item_id: str) -> ItemSnapshot | None: ...

    def update(self, item_id: str, delta: Decimal) -> Decimal | None:
        """Add ``delta`` to the stock as one increment and return the new balance."""
        ...

    def atomic(self) -> ContextManager[None]: ...


class TransactionStore(Protocol):
    def get(self, transaction_id: str) -> LedgerTransaction | None: ...

    def create(self, transaction: LedgerTransaction) -> None: ...

    def replace(self, transaction: LedgerTransaction) -> None: ...

    def delete(self, transaction_id: str) -> None: ...

    def list_for_item(self, item_id: str) -> list[LedgerTransaction]: ...


class MemoryItemRegistry:
    """Dict-backed registry serialised by one re-entrant lock."""

    def __init__(self, items: list[ItemSnapshot] | None = None) -> None:
        self._items: dict[str, ItemSnapshot] = {item.id: item for item in items or []}
        self._lock = threading.RLock()

    def add(self, item: ItemSnapshot) -> None:
        with self._lock:
            self._items[item.id] = item

    def remove(self, item_id: str) -> None:
        with self._lock:
            self._items.pop(item_id, None)

    def get(self, item_id: str) -> ItemSnapshot | None:
        with self._lock:
            return self._items.get(item_id)

    def update(self, item_id: str, delta: Decimal) -> Decimal | None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return None
            updated = replace(item, stock=item.stock + delta)
            self._items[item_id] = updated
            return updated.stock

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            snapshot = dict(self._items)
            try:
                yield
            except BaseException:
                self._items = snapshot
                raise


class MemoryTransactionStore:
    def __init__(self) -> None:
        self._transactions: dict[str, LedgerTransaction] = {}
        self._lock = threading.RLock()

    def get(self, transaction_id: str) -> LedgerTransaction | None:
        with self._lock:
            return self._transactions.get(transaction_id)

    def create(self, transaction: LedgerTransaction) -> None:
        with self._lock:
            if transaction.id in self._transactions:
                raise ValueError(f"Transaction {transaction.id} already exists")
            self._transactions[transaction.id] = transaction

    def replace(self, transaction: LedgerTransaction) -> None:
        with self._lock:
            if transaction.id not in self._transactions:
                raise KeyError(transaction.id)
            # dict keeps the original insertion slot, so tie ordering survives edits
            self._transactions[transaction.id] = transaction

    def delete(self, transaction_id: str) -> None:
        with self._lock:
            self._transactions.pop(transaction_id, None)

    def list_for_item(self, item_id: str) -> list[LedgerTransaction]:
        with self._lock:
            return [tx for tx in self._transactions.values() if tx.touches(item_id)]

    def all(self) -> list[LedgerTransaction]:
        with self._lock:
            return list(self._transactions.values())
