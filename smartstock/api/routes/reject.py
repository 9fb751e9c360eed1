import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartstock.api.deps import ledger_http_error, require_permission
from smartstock.api.routes.inventory import new_item_id, stock_card_out, validated_conversions
from smartstock.db.database import get_db
from smartstock.ledger.errors import LedgerError
from smartstock.ledger.types import LineItemRequest, TransactionDraft, TransactionType
from smartstock.models.reject import RejectItem, RejectTransaction, RejectTransactionLine, RejectUnitConversion
from smartstock.models.user import User
from smartstock.schemas.inventory import StockCardOut
from smartstock.schemas.reject import (
    RejectItemCreate,
    RejectItemOut,
    RejectItemUpdate,
    RejectTransactionCreate,
    RejectTransactionOut,
    RejectTransactionUpdate,
)
from smartstock.schemas.transactions import TransactionDeleteOut, to_naive_utc
from smartstock.services.audit import get_client_ip, log_audit
from smartstock.services.ledger_store import load_stock_card, reject_engine, replace_conversions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reject", tags=["Reject"])


def _get_reject_item_or_404(db: Session, item_id: str) -> RejectItem:
    item = db.get(RejectItem, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Reject item {item_id} not found")
    return item


def _get_reject_transaction_or_404(db: Session, transaction_id: str) -> RejectTransaction:
    record = db.get(RejectTransaction, transaction_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reject transaction {transaction_id} not found",
        )
    return record


def _reject_lines(items) -> tuple[LineItemRequest, ...]:
    return tuple(
        LineItemRequest(item_id=line.item_id.strip(), quantity=line.quantity, unit=line.unit, reason=line.reason)
        for line in items
    )


@router.post("/items", response_model=RejectItemOut, status_code=status.HTTP_201_CREATED)
def create_reject_item(
    payload: RejectItemCreate,
    request: Request,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    base_unit = payload.base_unit.strip()
    conversions = validated_conversions(base_unit, payload.conversions)
    item = RejectItem(
        id=payload.id.strip() if payload.id else new_item_id("REJ-ITM"),
        name=payload.name.strip(),
        sku=payload.sku.strip().upper(),
        category=payload.category.strip(),
        base_unit=base_unit,
        status=payload.status,
    )
    replace_conversions(item, RejectUnitConversion, conversions)
    db.add(item)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Reject item id or SKU already exists") from exc
    log_audit(
        db=db,
        event_type="reject.item.created",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details={"sku": item.sku},
    )
    db.commit()
    db.refresh(item)
    return item


@router.get("/items", response_model=list[RejectItemOut])
def list_reject_items(
    q: str | None = Query(default=None, description="Search by name or SKU"),
    category: str | None = None,
    _: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    query = select(RejectItem).order_by(RejectItem.name.asc())
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(RejectItem.name.ilike(pattern), RejectItem.sku.ilike(pattern)))
    if category:
        query = query.where(RejectItem.category == category)
    return list(db.scalars(query).all())


@router.get("/items/{item_id}", response_model=RejectItemOut)
def get_reject_item(
    item_id: str,
    _: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    return _get_reject_item_or_404(db, item_id)


@router.patch("/items/{item_id}", response_model=RejectItemOut)
def update_reject_item(
    item_id: str,
    payload: RejectItemUpdate,
    request: Request,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    item = _get_reject_item_or_404(db, item_id)
    if payload.base_unit is not None or payload.conversions is not None:
        base_unit = payload.base_unit.strip() if payload.base_unit is not None else item.base_unit
        source = payload.conversions if payload.conversions is not None else item.conversions
        conversions = validated_conversions(base_unit, source)
        item.base_unit = base_unit
        replace_conversions(item, RejectUnitConversion, conversions)
    if payload.name is not None:
        item.name = payload.name.strip()
    if payload.sku is not None:
        item.sku = payload.sku.strip().upper()
    if payload.category is not None:
        item.category = payload.category.strip()
    if payload.status is not None:
        item.status = payload.status
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Reject item SKU already exists") from exc
    log_audit(
        db=db,
        event_type="reject.item.updated",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details=payload.model_dump(exclude_unset=True),
    )
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reject_item(
    item_id: str,
    request: Request,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    item = _get_reject_item_or_404(db, item_id)
    log_audit(
        db=db,
        event_type="reject.item.deleted",
        actor_user_id=current_user.id,
        entity_id=item.id,
        ip_address=get_client_ip(request),
        details={"sku": item.sku, "stock": item.stock},
    )
    db.delete(item)
    db.commit()


@router.get("/items/{item_id}/stock-card", response_model=StockCardOut)
def reject_stock_card(
    item_id: str,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    item = _get_reject_item_or_404(db, item_id)
    return stock_card_out(load_stock_card(reject_engine(db), item), date_from, date_to)


@router.post("/transactions", response_model=RejectTransactionOut, status_code=status.HTTP_201_CREATED)
def create_reject_transaction(
    payload: RejectTransactionCreate,
    request: Request,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    draft = TransactionDraft(
        id=payload.id.strip() if payload.id else None,
        type=payload.type,
        date=payload.date or datetime.utcnow(),
        lines=_reject_lines(payload.items),
        attributes={"notes": payload.notes, "performer": current_user.name},
    )
    try:
        result = reject_engine(db).create(draft, allow_negative=payload.confirm_negative)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    log_audit(
        db=db,
        event_type="reject.transactions.created",
        actor_user_id=current_user.id,
        entity_id=result.transaction.id,
        ip_address=get_client_ip(request),
        details={"type": result.transaction.type.value, "balances": result.balances},
    )
    db.commit()
    return _get_reject_transaction_or_404(db, result.transaction.id)


@router.get("/transactions", response_model=list[RejectTransactionOut])
def list_reject_transactions(
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    item_id: str | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    _: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    query = select(RejectTransaction).order_by(RejectTransaction.date.desc(), RejectTransaction.created_at.desc())
    if transaction_type is not None:
        query = query.where(RejectTransaction.type == transaction_type)
    if item_id:
        touching = select(RejectTransactionLine.transaction_id).where(RejectTransactionLine.item_id == item_id)
        query = query.where(RejectTransaction.id.in_(touching))
    if date_from is not None:
        query = query.where(RejectTransaction.date >= to_naive_utc(date_from))
    if date_to is not None:
        query = query.where(RejectTransaction.date <= to_naive_utc(date_to))
    return list(db.scalars(query).all())


@router.get("/transactions/{transaction_id}", response_model=RejectTransactionOut)
def get_reject_transaction(
    transaction_id: str,
    _: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    return _get_reject_transaction_or_404(db, transaction_id)


@router.put("/transactions/{transaction_id}", response_model=RejectTransactionOut)
def update_reject_transaction(
    transaction_id: str,
    payload: RejectTransactionUpdate,
    request: Request,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    engine = reject_engine(db)
    current = engine.store.get(transaction_id)
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reject transaction {transaction_id} not found",
        )
    changes = payload.model_dump(include={"notes"}, exclude_unset=True)
    draft = TransactionDraft(
        id=transaction_id,
        type=payload.type or current.type,
        date=payload.date or current.date,
        lines=_reject_lines(payload.items) if payload.items is not None else tuple(
            line.as_request() for line in current.lines
        ),
        attributes={**changes, "performer": current_user.name},
    )
    try:
        result = engine.edit(
            transaction_id,
            draft,
            expected_version=payload.expected_version,
            allow_negative=payload.confirm_negative,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    log_audit(
        db=db,
        event_type="reject.transactions.updated",
        actor_user_id=current_user.id,
        entity_id=transaction_id,
        ip_address=get_client_ip(request),
        details={"version": result.transaction.version, "balances": result.balances},
    )
    db.commit()
    return _get_reject_transaction_or_404(db, transaction_id)


@router.delete("/transactions/{transaction_id}", response_model=TransactionDeleteOut)
def delete_reject_transaction(
    transaction_id: str,
    request: Request,
    expected_version: int | None = Query(default=None, ge=1),
    confirm_negative: bool = False,
    current_user: User = Depends(require_permission("reject:manage")),
    db: Session = Depends(get_db),
):
    _get_reject_transaction_or_404(db, transaction_id)
    try:
        result = reject_engine(db).delete(
            transaction_id,
            expected_version=expected_version,
            allow_negative=confirm_negative,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    log_audit(
        db=db,
        event_type="reject.transactions.deleted",
        actor_user_id=current_user.id,
        entity_id=transaction_id,
        ip_address=get_client_ip(request),
        details={"balances": result.balances, "integrity_errors": result.integrity_errors},
    )
    db.commit()
    return TransactionDeleteOut(id=transaction_id, deleted=True, integrity_errors=result.integrity_errors)
