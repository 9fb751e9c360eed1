from smartstock.models.inventory import InventoryItem, ItemUnitConversion, StockTransaction, StockTransactionLine
from smartstock.models.reject import RejectItem, RejectTransaction, RejectTransactionLine, RejectUnitConversion
from smartstock.models.user import AuditLog, User

__all__ = [
    "AuditLog",
    "InventoryItem",
    "ItemUnitConversion",
    "RejectItem",
    "RejectTransaction",
    "RejectTransactionLine",
    "RejectUnitConversion",
    "StockTransaction",
    "StockTransactionLine",
    "User",
]
