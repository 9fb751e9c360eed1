import logging
import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartstock.api.deps import ledger_http_error, require_permission
from smartstock.core.config import settings
from smartstock.db.database import get_db
from smartstock.ledger.errors import LedgerError
from smartstock.ledger.stock_card import StockCard
from smartstock.ledger.units import UnitConversion, convert, to_base, validate_conversions
from smartstock.models.inventory import InventoryItem, ItemUnitConversion
from smartstock.models.user import User
from smartstock.schemas.inventory import (
    ItemCreate,
    ItemOut,
    ItemUnitsOut,
    ItemUpdate,
    LowStockItemOut,
    StockCardEntryOut,
    StockCardOut,
    UnitConversionOut,
    UnitConvertOut,
    UnitConvertRequest,
)
from smartstock.schemas.transactions import to_naive_utc
from smartstock.services.audit import get_client_ip, log_audit
from smartstock.services.ledger_store import (
    factor_quantum,
    inventory_engine,
    load_stock_card,
    quantize_quantity,
    replace_conversions,
    snapshot_item,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def new_item_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def validated_conversions(base_unit: str, conversions) -> tuple[UnitConversion, ...]:
    try:
        return validate_conversions(
            base_unit,
            [(conv.name, conv.factor) for conv in conversions],
            quantum=factor_quantum(),
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc


def stock_card_out(card: StockCard, date_from: datetime | None, date_to: datetime | None) -> StockCardOut:
    item = card.item
    return StockCardOut(
        item_id=item.id,
        item_name=item.name,
        sku=item.sku,
        base_unit=item.base_unit,
        current_balance=card.current_balance,
        opening_balance=card.opening_balance,
        entries=[
            StockCardEntryOut(
                transaction_id=entry.transaction.id,
                date=entry.transaction.date,
                type=entry.transaction.type.value,
                reference=entry.transaction.attributes.get("reference_number"),
                notes=entry.transaction.attributes.get("notes"),
                quantity_in=entry.quantity_in,
                quantity_out=entry.quantity_out,
                balance_after=entry.balance_after,
                stale_units=list(entry.stale_units),
            )
            for entry in card.window(to_naive_utc(date_from), to_naive_utc(date_to))
        ],
    )


def _get_item_or_404(db: Session, item_id: str) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Item {item_id} not found")
    return item


@router.post("/items", response_model=ItemOut, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: ItemCreate,
    request: Request,
    current_user: User = Depends(require_permission("inventory:manage")),
    db: Session = Depends(get_db),
):
    base_unit = payload.base_unit.strip()
    conversions = validated_conversions(base_unit, payload.conversions)
    item = InventoryItem(
        id=payload.id.strip() if payload.id else new_item_id("ITM"),
        name=payload.name.strip(),
        sku=payload.sku.strip().upper(),
        category=payload.category.strip(),
        base_unit=base_unit,
        stock=quantize_quantity(payload.stock),
        min_stock=payload.min_stock if payload.min_stock is not None else Decimal(settings.default_min_stock),
        price=payload.price,
        status=payload.status,
    )
    replace_conversions(item, ItemUnitConversion, conversions)
    db.add(item)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Item id or SKU already exists") from exc
    log_audit(
        db=db,
        event_type="inventory.item.created",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details={"sku": item.sku, "stock": item.stock},
    )
    db.commit()
    db.refresh(item)
    logger.info("Created item %s (%s)", item.id, item.sku)
    return item


@router.get("/items", response_model=list[ItemOut])
def list_items(
    q: str | None = Query(default=None, description="Search by name or SKU"),
    category: str | None = None,
    item_status: str | None = Query(default=None, alias="status"),
    low_stock: bool | None = None,
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    query = select(InventoryItem).order_by(InventoryItem.name.asc())
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(InventoryItem.name.ilike(pattern), InventoryItem.sku.ilike(pattern)))
    if category:
        query = query.where(InventoryItem.category == category)
    if item_status:
        query = query.where(InventoryItem.status == item_status)
    if low_stock is not None:
        condition = InventoryItem.stock <= InventoryItem.min_stock
        query = query.where(condition if low_stock else ~condition)
    return list(db.scalars(query).all())


@router.get("/items/{item_id}", response_model=ItemOut)
def get_item(
    item_id: str,
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    return _get_item_or_404(db, item_id)


@router.patch("/items/{item_id}", response_model=ItemOut)
def update_item(
    item_id: str,
    payload: ItemUpdate,
    request: Request,
    current_user: User = Depends(require_permission("inventory:manage")),
    db: Session = Depends(get_db),
):
    item = _get_item_or_404(db, item_id)

    if payload.base_unit is not None or payload.conversions is not None:
        base_unit = payload.base_unit.strip() if payload.base_unit is not None else item.base_unit
        source = payload.conversions if payload.conversions is not None else item.conversions
        conversions = validated_conversions(base_unit, source)
        item.base_unit = base_unit
        replace_conversions(item, ItemUnitConversion, conversions)
    if payload.name is not None:
        item.name = payload.name.strip()
    if payload.sku is not None:
        item.sku = payload.sku.strip().upper()
    if payload.category is not None:
        item.category = payload.category.strip()
    if payload.min_stock is not None:
        item.min_stock = payload.min_stock
    if payload.price is not None:
        item.price = payload.price
    if payload.status is not None:
        item.status = payload.status

    details = payload.model_dump(exclude_unset=True, exclude={"stock"})
    if payload.stock is not None:
        corrected = quantize_quantity(payload.stock)
        previous = Decimal(item.stock)
        if corrected != previous:
            item.stock = corrected
            details["stock_correction"] = {"from": previous, "to": corrected}
            logger.info("Manual stock correction on %s: %s -> %s", item.id, previous, corrected)

    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Item SKU already exists") from exc
    log_audit(
        db=db,
        event_type="inventory.item.updated",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details=details,
    )
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: str,
    request: Request,
    current_user: User = Depends(require_permission("inventory:manage")),
    db: Session = Depends(get_db),
):
    item = _get_item_or_404(db, item_id)
    log_audit(
        db=db,
        event_type="inventory.item.deleted",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details={"sku": item.sku, "stock": item.stock},
    )
    db.delete(item)
    db.commit()
    logger.info("Deleted item %s; its transaction history is kept", item_id)


@router.get("/items/{item_id}/units", response_model=ItemUnitsOut)
def list_item_units(
    item_id: str,
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    item = _get_item_or_404(db, item_id)
    return ItemUnitsOut(
        item_id=item.id,
        base_unit=item.base_unit,
        units=[UnitConversionOut(name=item.base_unit, factor=Decimal("1"))]
        + [UnitConversionOut.model_validate(conv) for conv in item.conversions],
    )


@router.post("/items/{item_id}/convert", response_model=UnitConvertOut)
def convert_quantity(
    item_id: str,
    payload: UnitConvertRequest,
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    snapshot = snapshot_item(_get_item_or_404(db, item_id))
    try:
        base_quantity = to_base(payload.quantity, payload.from_unit, snapshot)
        converted = convert(payload.quantity, payload.from_unit, payload.to_unit, snapshot)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return UnitConvertOut(
        item_id=snapshot.id,
        quantity=payload.quantity,
        from_unit=payload.from_unit,
        to_unit=payload.to_unit,
        converted_quantity=converted,
        base_quantity=base_quantity,
    )


@router.get("/alerts/low-stock", response_model=list[LowStockItemOut])
def low_stock_alerts(
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    items = db.scalars(
        select(InventoryItem)
        .where(InventoryItem.stock <= InventoryItem.min_stock, InventoryItem.status == "active")
        .order_by(InventoryItem.stock.asc(), InventoryItem.name.asc())
    ).all()
    return [
        LowStockItemOut(
            id=item.id,
            name=item.name,
            sku=item.sku,
            base_unit=item.base_unit,
            stock=item.stock,
            min_stock=item.min_stock,
            shortfall=Decimal(item.min_stock) - Decimal(item.stock),
        )
        for item in items
    ]


@router.get("/items/{item_id}/stock-card", response_model=StockCardOut)
def item_stock_card(
    item_id: str,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    item = _get_item_or_404(db, item_id)
    card = load_stock_card(inventory_engine(db), item)
    return stock_card_out(card, date_from, date_to)
