import logging
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable

from smartstock.ledger.applier import StockLedgerApplier, aggregate_deltas, merge_deltas
from smartstock.ledger.errors import (
    InvalidQuantityError,
    ItemNotFoundError,
    NegativeStockWarning,
    RevisionConflictError,
)
from smartstock.ledger.stores import ItemRegistry, TransactionStore
from smartstock.ledger.types import LedgerTransaction, LineItem, LineItemRequest, TransactionDraft
from smartstock.ledger.units import fits_scale, resolve_factor, to_decimal

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    NEW = "new"
    SAVED = "saved"
    EDITED = "edited"
    DELETED = "deleted"


ALLOWED_TRANSITIONS: dict[TransactionState, frozenset[TransactionState]] = {
    TransactionState.NEW: frozenset({TransactionState.SAVED}),
    TransactionState.SAVED: frozenset({TransactionState.EDITED, TransactionState.DELETED}),
    TransactionState.EDITED: frozenset({TransactionState.SAVED}),
    TransactionState.DELETED: frozenset(),
}


def advance(current: TransactionState, target: TransactionState) -> TransactionState:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValueError(f"Illegal transaction state change {current.value} -> {target.value}")
    return target


@dataclass
class RevisionResult:
    transaction: LedgerTransaction
    state: TransactionState
    balances: dict[str, Decimal] = field(default_factory=dict)
    integrity_errors: list[str] = field(default_factory=list)


class TransactionRevisionEngine:
    def __init__(
        self,
        registry: ItemRegistry,
        store: TransactionStore,
        *,
        id_prefix: str = "TX",
        quantum: Decimal | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.applier = StockLedgerApplier(registry)
        self.id_prefix = id_prefix
        # storage scale; base quantities are rounded once at admission so the
        # persisted line and the applied delta are the same number
        self.quantum = quantum

    def new_transaction_id(self) -> str:
        return f"{self.id_prefix}-{uuid.uuid4().hex[:12].upper()}"

    def admit_lines(self, requests: Iterable[LineItemRequest]) -> tuple[LineItem, ...]:
        """Validate and normalise every line before anything is mutated."""
        admitted: list[LineItem] = []
        for request in requests:
            item = self.registry.get(request.item_id)
            if item is None:
                raise ItemNotFoundError(request.item_id)
            quantity = to_decimal(request.quantity)
            if not quantity.is_finite() or quantity <= 0:
                raise InvalidQuantityError(f"Quantity for item {request.item_id} must be greater than zero")
            if self.quantum is not None and not fits_scale(quantity, self.quantum):
                raise InvalidQuantityError(
                    f"Quantity for item {request.item_id} has more decimal places than {self.quantum} allows"
                )
            factor = resolve_factor(request.unit, item)
            base_quantity = quantity * factor
            if self.quantum is not None:
                base_quantity = base_quantity.quantize(self.quantum, rounding=ROUND_HALF_UP)
                if base_quantity == 0:
                    raise InvalidQuantityError(
                        f"Quantity for item {request.item_id} is below the smallest storable amount {self.quantum}"
                    )
            admitted.append(
                LineItem(
                    item_id=item.id,
                    quantity=quantity,
                    unit=request.unit,
                    factor=factor,
                    base_quantity=base_quantity,
                    item_name=item.name,
                    sku=item.sku,
                    reason=request.reason,
                )
            )
        if not admitted:
            raise InvalidQuantityError("A transaction needs at least one line item")
        return tuple(admitted)

    def _check_negative(self, net: dict[str, Decimal], allow_negative: bool) -> None:
        if allow_negative:
            return
        projected: dict[str, Decimal] = {}
        for item_id, delta in net.items():
            if delta >= 0:
                continue
            item = self.registry.get(item_id)
            if item is None:
                continue
            balance = item.stock + delta
            if balance < 0:
                projected[item_id] = balance
        if projected:
            raise NegativeStockWarning(projected)

    def _fetch_current(self, transaction_id: str, expected_version: int | None) -> LedgerTransaction:
        current = self.store.get(transaction_id)
        if current is None:
            raise RevisionConflictError(transaction_id, "no longer exists; re-fetch and retry")
        if expected_version is not None and current.version != expected_version:
            raise RevisionConflictError(
                transaction_id,
                f"was modified concurrently (expected version {expected_version}, found {current.version})",
            )
        return current

    def create(self, draft: TransactionDraft, *, allow_negative: bool = False) -> RevisionResult:
        with self.registry.atomic():
            lines = self.admit_lines(draft.lines)
            transaction_id = draft.id or self.new_transaction_id()
            if self.store.get(transaction_id) is not None:
                raise RevisionConflictError(transaction_id, "already exists")
            self._check_negative(aggregate_deltas(lines, draft.type, 1), allow_negative)

            transaction = LedgerTransaction(
                id=transaction_id,
                type=draft.type,
                date=draft.date,
                lines=lines,
                version=1,
                attributes=dict(draft.attributes),
            )
            self.store.create(transaction)
            applied = self.applier.apply_delta(lines, transaction.type, 1)
            state = advance(TransactionState.NEW, TransactionState.SAVED)

        logger.info("Created %s transaction %s with %d line(s)", transaction.type.value, transaction.id, len(lines))
        return RevisionResult(
            transaction=transaction,
            state=state,
            balances=applied.balances,
            integrity_errors=applied.integrity_errors,
        )

    def edit(
        self,
        transaction_id: str,
        draft: TransactionDraft,
        *,
        expected_version: int | None = None,
        allow_negative: bool = False,
    ) -> RevisionResult:
        with self.registry.atomic():
            old = self._fetch_current(transaction_id, expected_version)
            lines = self.admit_lines(draft.lines)
            net = merge_deltas(
                aggregate_deltas(old.lines, old.type, -1),
                aggregate_deltas(lines, draft.type, 1),
            )
            self._check_negative(net, allow_negative)

            # revert with the old record's own type and base quantities, then apply the new body
            reverted = self.applier.apply_delta(old.lines, old.type, -1)
            applied = self.applier.apply_delta(lines, draft.type, 1)

            updated = LedgerTransaction(
                id=old.id,
                type=draft.type,
                date=draft.date,
                lines=lines,
                version=old.version + 1,
                attributes={**old.attributes, **draft.attributes},
            )
            self.store.replace(updated)
            state = advance(advance(TransactionState.SAVED, TransactionState.EDITED), TransactionState.SAVED)

        logger.info(
            "Revised transaction %s to version %d (%s -> %s)",
            updated.id,
            updated.version,
            old.type.value,
            updated.type.value,
        )
        return RevisionResult(
            transaction=updated,
            state=state,
            balances={**reverted.balances, **applied.balances},
            integrity_errors=reverted.integrity_errors + applied.integrity_errors,
        )

    def delete(
        self,
        transaction_id: str,
        *,
        expected_version: int | None = None,
        allow_negative: bool = False,
    ) -> RevisionResult:
        with self.registry.atomic():
            current = self._fetch_current(transaction_id, expected_version)
            self._check_negative(aggregate_deltas(current.lines, current.type, -1), allow_negative)
            reverted = self.applier.apply_delta(current.lines, current.type, -1)
            self.store.delete(current.id)
            state = advance(TransactionState.SAVED, TransactionState.DELETED)

        logger.info("Deleted transaction %s", current.id)
        return RevisionResult(
            transaction=current,
            state=state,
            balances=reverted.balances,
            integrity_errors=reverted.integrity_errors,
        )
