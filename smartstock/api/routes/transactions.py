import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from smartstock.api.deps import ledger_http_error, require_permission
from smartstock.db.database import get_db
from smartstock.ledger.errors import LedgerError
from smartstock.ledger.revision import RevisionResult
from smartstock.ledger.types import LineItemRequest, TransactionDraft, TransactionType
from smartstock.models.inventory import StockTransaction, StockTransactionLine
from smartstock.models.user import User
from smartstock.schemas.transactions import (
    TransactionCreate,
    TransactionDeleteOut,
    TransactionOut,
    TransactionUpdate,
    to_naive_utc,
)
from smartstock.services.audit import get_client_ip, log_audit
from smartstock.services.ledger_store import inventory_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


def _line_requests(items) -> tuple[LineItemRequest, ...]:
    return tuple(LineItemRequest(item_id=line.item_id.strip(), quantity=line.quantity, unit=line.unit) for line in items)


def _audit_revision(
    db: Session,
    request: Request,
    current_user: User,
    event_type: str,
    result: RevisionResult,
) -> None:
    log_audit(
        db=db,
        event_type=event_type,
        actor_user_id=current_user.id,
        entity_id=result.transaction.id,
        ip_address=get_client_ip(request),
        details={
            "type": result.transaction.type.value,
            "version": result.transaction.version,
            "balances": result.balances,
            "integrity_errors": result.integrity_errors,
        },
    )


def _get_transaction_or_404(db: Session, transaction_id: str) -> StockTransaction:
    record = db.get(StockTransaction, transaction_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transaction {transaction_id} not found")
    return record


@router.post("", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    request: Request,
    current_user: User = Depends(require_permission("transactions:write")),
    db: Session = Depends(get_db),
):
    draft = TransactionDraft(
        id=payload.id.strip() if payload.id else None,
        type=payload.type,
        date=payload.date or datetime.utcnow(),
        lines=_line_requests(payload.items),
        attributes={
            "reference_number": payload.reference_number,
            "supplier": payload.supplier,
            "notes": payload.notes,
            "performer": current_user.name,
        },
    )
    try:
        result = inventory_engine(db).create(draft, allow_negative=payload.confirm_negative)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    _audit_revision(db, request, current_user, "transactions.created", result)
    db.commit()
    return _get_transaction_or_404(db, result.transaction.id)


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    item_id: str | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    query = select(StockTransaction).order_by(StockTransaction.date.desc(), StockTransaction.created_at.desc())
    if transaction_type is not None:
        query = query.where(StockTransaction.type == transaction_type)
    if item_id:
        touching = select(StockTransactionLine.transaction_id).where(StockTransactionLine.item_id == item_id)
        query = query.where(StockTransaction.id.in_(touching))
    if date_from is not None:
        query = query.where(StockTransaction.date >= to_naive_utc(date_from))
    if date_to is not None:
        query = query.where(StockTransaction.date <= to_naive_utc(date_to))
    return list(db.scalars(query.limit(limit)).all())


@router.get("/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: str,
    _: User = Depends(require_permission("inventory:view")),
    db: Session = Depends(get_db),
):
    return _get_transaction_or_404(db, transaction_id)


@router.put("/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    request: Request,
    current_user: User = Depends(require_permission("transactions:write")),
    db: Session = Depends(get_db),
):
    engine = inventory_engine(db)
    current = engine.store.get(transaction_id)
    if current is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Transaction {transaction_id} not found")

    # omitted fields keep the stored values
    changes = payload.model_dump(include={"reference_number", "supplier", "notes"}, exclude_unset=True)
    draft = TransactionDraft(
        id=transaction_id,
        type=payload.type or current.type,
        date=payload.date or current.date,
        lines=_line_requests(payload.items) if payload.items is not None else tuple(
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
    _audit_revision(db, request, current_user, "transactions.updated", result)
    db.commit()
    return _get_transaction_or_404(db, transaction_id)


@router.delete("/{transaction_id}", response_model=TransactionDeleteOut)
def delete_transaction(
    transaction_id: str,
    request: Request,
    expected_version: int | None = Query(default=None, ge=1),
    confirm_negative: bool = False,
    current_user: User = Depends(require_permission("transactions:write")),
    db: Session = Depends(get_db),
):
    _get_transaction_or_404(db, transaction_id)
    try:
        result = inventory_engine(db).delete(
            transaction_id,
            expected_version=expected_version,
            allow_negative=confirm_negative,
        )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    _audit_revision(db, request, current_user, "transactions.deleted", result)
    db.commit()
    if result.integrity_errors:
        logger.warning("Transaction %s deleted with integrity errors: %s", transaction_id, result.integrity_errors)
    return TransactionDeleteOut(id=transaction_id, deleted=True, integrity_errors=result.integrity_errors)
