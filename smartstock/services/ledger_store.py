from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from smartstock.core.config import settings
from smartstock.ledger.errors import RevisionConflictError
from smartstock.ledger.revision import TransactionRevisionEngine
from smartstock.ledger.stock_card import StockCard, build_history
from smartstock.ledger.types import LedgerTransaction, LineItem
from smartstock.ledger.units import ItemSnapshot, UnitConversion
from smartstock.models.inventory import InventoryItem, ItemUnitConversion, StockTransaction, StockTransactionLine
from smartstock.models.reject import RejectItem, RejectTransaction, RejectTransactionLine, RejectUnitConversion

STOCK_TRANSACTION_FIELDS = ("reference_number", "supplier", "notes", "performer")
REJECT_TRANSACTION_FIELDS = ("notes", "performer")


# scales of the Numeric quantity and factor columns
QUANTITY_COLUMN_SCALE = 4
FACTOR_COLUMN_SCALE = 6


def quantity_quantum() -> Decimal:
    return Decimal(1).scaleb(-min(settings.quantity_decimal_places, QUANTITY_COLUMN_SCALE))


def factor_quantum() -> Decimal:
    return Decimal(1).scaleb(-FACTOR_COLUMN_SCALE)


def quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(quantity_quantum(), rounding=ROUND_HALF_UP)


def snapshot_item(item: InventoryItem | RejectItem) -> ItemSnapshot:
    return ItemSnapshot(
        id=item.id,
        base_unit=item.base_unit,
        stock=Decimal(item.stock),
        conversions=tuple(UnitConversion(name=conv.name, factor=Decimal(conv.factor)) for conv in item.conversions),
        min_stock=Decimal(getattr(item, "min_stock", 0) or 0),
        name=item.name,
        sku=item.sku,
    )


def replace_conversions(
    item: InventoryItem | RejectItem,
    conversion_model: type[ItemUnitConversion] | type[RejectUnitConversion],
    conversions: tuple[UnitConversion, ...],
) -> None:
    existing = {conv.name: conv for conv in item.conversions}
    rows = []
    for position, conv in enumerate(conversions):
        row = existing.get(conv.name) or conversion_model(name=conv.name)
        row.position = position
        row.factor = conv.factor
        rows.append(row)
    item.conversions = rows


class SqlItemRegistry:
    def __init__(self, db: Session, model: type[InventoryItem] | type[RejectItem]) -> None:
        self.db = db
        self.model = model

    def get(self, item_id: str) -> ItemSnapshot | None:
        item = self.db.get(self.model, item_id)
        return snapshot_item(item) if item else None

    def update(self, item_id: str, delta: Decimal) -> Decimal | None:
        # stock = stock + delta runs in the database, which holds the row (or, on
        # SQLite, the file) write lock until the session commits or rolls back
        balance = self.db.execute(
            update(self.model)
            .where(self.model.id == item_id)
            .values(stock=self.model.stock + quantize_quantity(delta))
            .returning(self.model.stock)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()
        if balance is None:
            return None
        loaded = self.db.identity_map.get(identity_key(self.model, item_id))
        if loaded is not None:
            self.db.expire(loaded, ["stock"])
        return quantize_quantity(Decimal(balance))

    @contextmanager
    def atomic(self) -> Iterator[None]:
        # the session transaction is the unit of work; callers commit on success
        try:
            yield
        except Exception:
            self.db.rollback()
            raise


class SqlTransactionStore:
    def __init__(
        self,
        db: Session,
        model: type[StockTransaction] | type[RejectTransaction],
        line_model: type[StockTransactionLine] | type[RejectTransactionLine],
        attribute_fields: tuple[str, ...],
    ) -> None:
        self.db = db
        self.model = model
        self.line_model = line_model
        self.attribute_fields = attribute_fields
        self.has_reason = hasattr(line_model, "reason")

    def to_ledger(self, record: StockTransaction | RejectTransaction) -> LedgerTransaction:
        return LedgerTransaction(
            id=record.id,
            type=record.type,
            date=record.date,
            lines=tuple(
                LineItem(
                    item_id=line.item_id,
                    quantity=Decimal(line.quantity),
                    unit=line.unit,
                    factor=Decimal(line.factor),
                    base_quantity=Decimal(line.base_quantity),
                    item_name=line.item_name,
                    sku=line.sku,
                    reason=getattr(line, "reason", None),
                )
                for line in record.lines
            ),
            version=record.version,
            attributes={name: getattr(record, name) for name in self.attribute_fields},
        )

    def _build_lines(self, transaction: LedgerTransaction) -> list:
        rows = []
        for position, line in enumerate(transaction.lines):
            values = {
                "position": position,
                "item_id": line.item_id,
                "item_name": line.item_name,
                "sku": line.sku,
                "quantity": line.quantity,
                "unit": line.unit,
                "factor": line.factor,
                "base_quantity": line.base_quantity,
            }
            if self.has_reason:
                values["reason"] = line.reason or ""
            rows.append(self.line_model(**values))
        return rows

    def _attributes(self, transaction: LedgerTransaction) -> dict:
        return {name: transaction.attributes.get(name) for name in self.attribute_fields}

    def get(self, transaction_id: str) -> LedgerTransaction | None:
        record = self.db.scalar(select(self.model).where(self.model.id == transaction_id).with_for_update())
        return self.to_ledger(record) if record else None

    def create(self, transaction: LedgerTransaction) -> None:
        record = self.model(
            id=transaction.id,
            type=transaction.type,
            date=transaction.date,
            version=transaction.version,
            lines=self._build_lines(transaction),
            **self._attributes(transaction),
        )
        self.db.add(record)
        self.db.flush()

    def replace(self, transaction: LedgerTransaction) -> None:
        record = self.db.get(self.model, transaction.id)
        if record is None:
            raise RevisionConflictError(transaction.id, "no longer exists; re-fetch and retry")
        record.type = transaction.type
        record.date = transaction.date
        record.version = transaction.version
        for name, value in self._attributes(transaction).items():
            setattr(record, name, value)
        record.lines = self._build_lines(transaction)
        self.db.flush()

    def delete(self, transaction_id: str) -> None:
        record = self.db.get(self.model, transaction_id)
        if record is not None:
            self.db.delete(record)
            self.db.flush()

    def list_for_item(self, item_id: str) -> list[LedgerTransaction]:
        touching = select(self.line_model.transaction_id).where(self.line_model.item_id == item_id)
        records = self.db.scalars(
            select(self.model)
            .where(self.model.id.in_(touching))
            .order_by(self.model.created_at.asc(), self.model.id.asc())
        ).all()
        return [self.to_ledger(record) for record in records]


def inventory_engine(db: Session) -> TransactionRevisionEngine:
    return TransactionRevisionEngine(
        SqlItemRegistry(db, InventoryItem),
        SqlTransactionStore(db, StockTransaction, StockTransactionLine, STOCK_TRANSACTION_FIELDS),
        id_prefix="TX",
        quantum=quantity_quantum(),
    )


def reject_engine(db: Session) -> TransactionRevisionEngine:
    return TransactionRevisionEngine(
        SqlItemRegistry(db, RejectItem),
        SqlTransactionStore(db, RejectTransaction, RejectTransactionLine, REJECT_TRANSACTION_FIELDS),
        id_prefix="REJ",
        quantum=quantity_quantum(),
    )


def load_stock_card(engine: TransactionRevisionEngine, item: InventoryItem | RejectItem) -> StockCard:
    snapshot = snapshot_item(item)
    return build_history(snapshot, engine.store.list_for_item(item.id))
