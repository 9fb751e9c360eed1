from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, computed_field

ItemStatus = Literal["active", "inactive"]


class UnitConversionIn(BaseModel):
    name: str = Field(min_length=1, max_length=24)
    factor: Decimal = Field(gt=0)


class UnitConversionOut(BaseModel):
    name: str
    factor: Decimal

    model_config = {"from_attributes": True}


class ItemCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=160)
    sku: str = Field(min_length=1, max_length=64)
    category: str = Field(default="General", min_length=1, max_length=120)
    base_unit: str = Field(default="pcs", min_length=1, max_length=24)
    conversions: list[UnitConversionIn] = Field(default_factory=list)
    stock: Decimal = Decimal("0")
    min_stock: Decimal | None = Field(default=None, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    status: ItemStatus = "active"


class ItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    category: str | None = Field(default=None, min_length=1, max_length=120)
    base_unit: str | None = Field(default=None, min_length=1, max_length=24)
    conversions: list[UnitConversionIn] | None = None
    stock: Decimal | None = Field(default=None, description="Manual stock correction, in base units")
    min_stock: Decimal | None = Field(default=None, ge=0)
    price: Decimal | None = Field(default=None, ge=0)
    status: ItemStatus | None = None


class ItemOut(BaseModel):
    id: str
    name: str
    sku: str
    category: str
    base_unit: str
    conversions: list[UnitConversionOut]
    stock: Decimal
    min_stock: Decimal
    price: Decimal
    status: ItemStatus
    last_updated: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock


class LowStockItemOut(BaseModel):
    id: str
    name: str
    sku: str
    base_unit: str
    stock: Decimal
    min_stock: Decimal
    shortfall: Decimal


class ItemUnitsOut(BaseModel):
    item_id: str
    base_unit: str
    units: list[UnitConversionOut]


class UnitConvertRequest(BaseModel):
    quantity: Decimal = Field(gt=0)
    from_unit: str = Field(min_length=1, max_length=24)
    to_unit: str = Field(min_length=1, max_length=24)


class UnitConvertOut(BaseModel):
    item_id: str
    quantity: Decimal
    from_unit: str
    to_unit: str
    converted_quantity: Decimal
    base_quantity: Decimal


class StockCardEntryOut(BaseModel):
    transaction_id: str
    date: datetime
    type: str
    reference: str | None
    notes: str | None
    quantity_in: Decimal
    quantity_out: Decimal
    balance_after: Decimal
    stale_units: list[str]


class StockCardOut(BaseModel):
    item_id: str
    item_name: str
    sku: str
    base_unit: str
    current_balance: Decimal
    opening_balance: Decimal
    entries: list[StockCardEntryOut]
