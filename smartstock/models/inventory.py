from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from smartstock.db.database import Base
from smartstock.ledger.types import TransactionType


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(160), index=True, nullable=False)
    sku: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    category: Mapped[str] = mapped_column(String(120), index=True, default="General", nullable=False)
    base_unit: Mapped[str] = mapped_column(String(24), default="pcs", nullable=False)
    stock: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=Decimal("0"), nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=Decimal("0"), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="active", index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    conversions: Mapped[list["ItemUnitConversion"]] = relationship(
        order_by="ItemUnitConversion.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ItemUnitConversion(Base):
    __tablename__ = "item_unit_conversions"
    __table_args__ = (UniqueConstraint("item_id", "name", name="uq_item_unit_conversions_item_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    item_id: Mapped[str] = mapped_column(
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    name: Mapped[str] = mapped_column(String(24), nullable=False)
    factor: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)


class StockTransaction(Base):
    __tablename__ = "stock_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    type: Mapped[TransactionType] = mapped_column(SQLEnum(TransactionType), index=True, nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(160), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    performer: Mapped[str | None] = mapped_column(String(120), nullable=True)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    lines: Mapped[list["StockTransactionLine"]] = relationship(
        order_by="StockTransactionLine.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class StockTransactionLine(Base):
    __tablename__ = "stock_transaction_lines"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    transaction_id: Mapped[str] = mapped_column(
        ForeignKey("stock_transactions.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # no FK: history outlives a deleted item master row
    item_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    item_name: Mapped[str] = mapped_column(String(160), default="", nullable=False)
    sku: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(24), nullable=False)
    factor: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    base_quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
