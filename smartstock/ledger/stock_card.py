from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from smartstock.ledger.types import LedgerTransaction, TransactionType
from smartstock.ledger.units import ItemSnapshot


@dataclass(frozen=True)
class StockCardEntry:
    transaction: LedgerTransaction
    delta: Decimal
    balance_after: Decimal
    stale_units: tuple[str, ...] = ()

    @property
    def quantity_in(self) -> Decimal:
        return self.delta if self.transaction.type is TransactionType.IN else Decimal("0")

    @property
    def quantity_out(self) -> Decimal:
        return -self.delta if self.transaction.type is TransactionType.OUT else Decimal("0")


@dataclass(frozen=True)
class StockCard:
    item: ItemSnapshot
    opening_balance: Decimal
    entries: list[StockCardEntry] = field(default_factory=list)

    @property
    def current_balance(self) -> Decimal:
        return self.item.stock

    def window(self, date_from: datetime | None = None, date_to: datetime | None = None) -> list[StockCardEntry]:
        return [
            entry
            for entry in self.entries
            if (date_from is None or entry.transaction.date >= date_from)
            and (date_to is None or entry.transaction.date <= date_to)
        ]


def build_history(item: ItemSnapshot, transactions: Iterable[LedgerTransaction]) -> StockCard:
    """Walk backwards from the current stock, undoing one transaction at a time.

    Entries come back newest first. Transactions sharing a timestamp keep their
    relative input order, since ``sorted`` is stable with ``reverse=True``.
    """
    touching = [tx for tx in transactions if tx.touches(item.id)]
    ordered = sorted(touching, key=lambda tx: tx.date, reverse=True)
    known_units = set(item.unit_names)

    running = item.stock
    entries: list[StockCardEntry] = []
    for tx in ordered:
        delta = tx.signed_delta_for(item.id)
        stale = tuple(
            sorted({line.unit for line in tx.lines if line.item_id == item.id and line.unit not in known_units})
        )
        entries.append(StockCardEntry(transaction=tx, delta=delta, balance_after=running, stale_units=stale))
        running -= delta
    return StockCard(item=item, opening_balance=running, entries=entries)


def replay(card: StockCard) -> Decimal:
    balance = card.opening_balance
    for entry in reversed(card.entries):
        balance += entry.delta
    return balance
