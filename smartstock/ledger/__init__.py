from smartstock.ledger.applier import ApplyResult, StockLedgerApplier, aggregate_deltas
from smartstock.ledger.errors import (
    InvalidConversionError,
    InvalidQuantityError,
    ItemNotFoundError,
    LedgerError,
    NegativeStockWarning,
    RevisionConflictError,
    UnknownUnitError,
)
from smartstock.ledger.revision import RevisionResult, TransactionRevisionEngine, TransactionState
from smartstock.ledger.stock_card import StockCard, StockCardEntry, build_history, replay
from smartstock.ledger.stores import ItemRegistry, MemoryItemRegistry, MemoryTransactionStore, TransactionStore
from smartstock.ledger.types import LedgerTransaction, LineItem, LineItemRequest, TransactionDraft, TransactionType
from smartstock.ledger.units import (
    ItemSnapshot,
    UnitConversion,
    convert,
    fits_scale,
    from_base,
    resolve_factor,
    to_base,
    to_decimal,
    validate_conversions,
)

__all__ = [
    "ApplyResult",
    "InvalidConversionError",
    "InvalidQuantityError",
    "ItemNotFoundError",
    "ItemRegistry",
    "ItemSnapshot",
    "LedgerError",
    "LedgerTransaction",
    "LineItem",
    "LineItemRequest",
    "MemoryItemRegistry",
    "MemoryTransactionStore",
    "NegativeStockWarning",
    "RevisionConflictError",
    "RevisionResult",
    "StockCard",
    "StockCardEntry",
    "StockLedgerApplier",
    "TransactionDraft",
    "TransactionRevisionEngine",
    "TransactionState",
    "TransactionStore",
    "TransactionType",
    "UnitConversion",
    "UnknownUnitError",
    "aggregate_deltas",
    "build_history",
    "convert",
    "fits_scale",
    "from_base",
    "replay",
    "resolve_factor",
    "to_base",
    "to_decimal",
    "validate_conversions",
]
