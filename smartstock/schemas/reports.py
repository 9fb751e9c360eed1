from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from smartstock.ledger.types import TransactionType


class ReportRowOut(BaseModel):
    transaction_id: str
    date: datetime
    type: TransactionType
    reference: str | None
    supplier: str | None
    item_id: str
    item_name: str
    sku: str
    quantity: Decimal
    unit: str
    base_quantity: Decimal
    notes: str | None


class CategoryStockOut(BaseModel):
    category: str
    total_stock: Decimal
    item_count: int


class RecentActivityOut(BaseModel):
    transaction_id: str
    date: datetime
    type: TransactionType
    item_name: str
    quantity: Decimal
    unit: str


class DashboardSummaryOut(BaseModel):
    total_items: int
    active_items: int
    low_stock_items: int
    total_stock_value: Decimal
    total_transactions: int
    total_in_base_quantity: Decimal
    total_out_base_quantity: Decimal
    stock_by_category: list[CategoryStockOut]
    recent_activity: list[RecentActivityOut]
