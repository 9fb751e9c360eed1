import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from smartstock.ledger.stores import ItemRegistry
from smartstock.ledger.types import LineItem, TransactionType

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    deltas: dict[str, Decimal] = field(default_factory=dict)
    balances: dict[str, Decimal] = field(default_factory=dict)
    integrity_errors: list[str] = field(default_factory=list)


def _check_multiplier(multiplier: int) -> None:
    if multiplier not in (1, -1):
        raise ValueError(f"multiplier must be +1 or -1, got {multiplier!r}")


def aggregate_deltas(
    lines: Iterable[LineItem],
    direction: TransactionType,
    multiplier: int = 1,
) -> dict[str, Decimal]:
    _check_multiplier(multiplier)
    grouped: dict[str, Decimal] = {}
    for line in lines:
        grouped[line.item_id] = grouped.get(line.item_id, Decimal("0")) + line.base_quantity
    signed_factor = direction.sign * multiplier
    return {item_id: quantity * signed_factor for item_id, quantity in grouped.items()}


def merge_deltas(*deltas: dict[str, Decimal]) -> dict[str, Decimal]:
    merged: dict[str, Decimal] = {}
    for delta in deltas:
        for item_id, quantity in delta.items():
            merged[item_id] = merged.get(item_id, Decimal("0")) + quantity
    return merged


class StockLedgerApplier:
    def __init__(self, registry: ItemRegistry) -> None:
        self.registry = registry

    def apply_delta(
        self,
        lines: Iterable[LineItem],
        direction: TransactionType,
        multiplier: int = 1,
    ) -> ApplyResult:
        result = ApplyResult()
        for item_id, delta in aggregate_deltas(lines, direction, multiplier).items():
            balance = self.registry.update(item_id, delta)
            if balance is None:
                message = f"Item {item_id} missing from registry; skipped delta {delta}"
                logger.warning(message)
                result.integrity_errors.append(message)
                continue
            result.deltas[item_id] = delta
            result.balances[item_id] = balance
        return result
