from decimal import Decimal


class LedgerError(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnknownUnitError(LedgerError):
    def __init__(self, item_id: str, unit: str, known_units: list[str]) -> None:
        super().__init__(
            f"Unknown unit '{unit}' for item {item_id}; expected one of: {', '.join(known_units)}"
        )
        self.item_id = item_id
        self.unit = unit
        self.known_units = known_units


class ItemNotFoundError(LedgerError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id


class RevisionConflictError(LedgerError):
    def __init__(self, transaction_id: str, reason: str) -> None:
        super().__init__(f"Transaction {transaction_id}: {reason}")
        self.transaction_id = transaction_id


class InvalidConversionError(LedgerError):
    pass


class InvalidQuantityError(LedgerError):
    pass


class NegativeStockWarning(LedgerError):
    """Raised when a change would leave one or more items below zero.

    Not a hard failure: callers may resubmit with ``allow_negative=True`` to
    record the oversell.
    """

    def __init__(self, projected: dict[str, Decimal]) -> None:
        listing = ", ".join(f"{item_id} -> {balance}" for item_id, balance in projected.items())
        super().__init__(f"Stock would become negative: {listing}")
        self.projected = projected
