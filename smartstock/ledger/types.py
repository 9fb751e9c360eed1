from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionType.IN else -1


@dataclass(frozen=True)
class LineItemRequest:
    item_id: str
    quantity: Decimal | int | float | str
    unit: str
    reason: str | None = None


@dataclass(frozen=True)
class LineItem:
    item_id: str
    quantity: Decimal
    unit: str
    factor: Decimal
    base_quantity: Decimal
    item_name: str = ""
    sku: str = ""
    reason: str | None = None

    def as_request(self) -> LineItemRequest:
        return LineItemRequest(item_id=self.item_id, quantity=self.quantity, unit=self.unit, reason=self.reason)


@dataclass(frozen=True)
class TransactionDraft:
    type: TransactionType
    date: datetime
    lines: tuple[LineItemRequest, ...]
    id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LedgerTransaction:
    id: str
    type: TransactionType
    date: datetime
    lines: tuple[LineItem, ...]
    version: int = 1
    attributes: dict[str, Any] = field(default_factory=dict)

    def touches(self, item_id: str) -> bool:
        return any(line.item_id == item_id for line in self.lines)

    def base_quantity_for(self, item_id: str) -> Decimal:
        return sum((line.base_quantity for line in self.lines if line.item_id == item_id), Decimal("0"))

    def signed_delta_for(self, item_id: str) -> Decimal:
        return self.base_quantity_for(item_id) * self.type.sign
