from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from smartstock.ledger.types import TransactionType
from smartstock.schemas.inventory import ItemStatus, UnitConversionIn, UnitConversionOut
from smartstock.schemas.transactions import to_naive_utc


class RejectItemCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=160)
    sku: str = Field(min_length=1, max_length=64)
    category: str = Field(default="General", min_length=1, max_length=120)
    base_unit: str = Field(default="pcs", min_length=1, max_length=24)
    conversions: list[UnitConversionIn] = Field(default_factory=list)
    status: ItemStatus = "active"


class RejectItemUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=160)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    category: str | None = Field(default=None, min_length=1, max_length=120)
    base_unit: str | None = Field(default=None, min_length=1, max_length=24)
    conversions: list[UnitConversionIn] | None = None
    status: ItemStatus | None = None


class RejectItemOut(BaseModel):
    id: str
    name: str
    sku: str
    category: str
    base_unit: str
    conversions: list[UnitConversionOut]
    stock: Decimal
    status: ItemStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class RejectLineIn(BaseModel):
    item_id: str = Field(min_length=1, max_length=64)
    quantity: Decimal = Field(gt=0)
    unit: str = Field(min_length=1, max_length=24)
    reason: str = Field(min_length=1, max_length=255)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("reason must not be empty")
        return stripped


class RejectLineOut(BaseModel):
    item_id: str
    item_name: str
    sku: str
    quantity: Decimal
    unit: str
    factor: Decimal
    base_quantity: Decimal
    reason: str

    model_config = {"from_attributes": True}


class RejectTransactionCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    type: TransactionType = TransactionType.IN
    date: datetime | None = None
    notes: str | None = None
    items: list[RejectLineIn] = Field(min_length=1)
    confirm_negative: bool = False

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class RejectTransactionUpdate(BaseModel):
    type: TransactionType | None = None
    date: datetime | None = None
    notes: str | None = None
    items: list[RejectLineIn] | None = Field(default=None, min_length=1)
    expected_version: int | None = Field(default=None, ge=1)
    confirm_negative: bool = False

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class RejectTransactionOut(BaseModel):
    id: str
    type: TransactionType
    date: datetime
    notes: str | None
    performer: str | None
    version: int
    lines: list[RejectLineOut]
    created_at: datetime

    model_config = {"from_attributes": True}
