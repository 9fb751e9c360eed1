from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from smartstock.ledger.types import TransactionType


def to_naive_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class LineItemIn(BaseModel):
    item_id: str = Field(min_length=1, max_length=64)
    quantity: Decimal = Field(gt=0)
    unit: str = Field(min_length=1, max_length=24)


class LineItemOut(BaseModel):
    item_id: str
    item_name: str
    sku: str
    quantity: Decimal
    unit: str
    factor: Decimal
    base_quantity: Decimal

    model_config = {"from_attributes": True}


class TransactionCreate(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    type: TransactionType
    date: datetime | None = None
    reference_number: str | None = Field(default=None, max_length=64)
    supplier: str | None = Field(default=None, max_length=160)
    notes: str | None = None
    items: list[LineItemIn] = Field(min_length=1)
    confirm_negative: bool = False

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class TransactionUpdate(BaseModel):
    type: TransactionType | None = None
    date: datetime | None = None
    reference_number: str | None = Field(default=None, max_length=64)
    supplier: str | None = Field(default=None, max_length=160)
    notes: str | None = None
    items: list[LineItemIn] | None = Field(default=None, min_length=1)
    expected_version: int | None = Field(default=None, ge=1)
    confirm_negative: bool = False

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)


class TransactionOut(BaseModel):
    id: str
    type: TransactionType
    date: datetime
    reference_number: str | None
    supplier: str | None
    notes: str | None
    performer: str | None
    version: int
    lines: list[LineItemOut]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TransactionDeleteOut(BaseModel):
    id: str
    deleted: bool
    integrity_errors: list[str]
