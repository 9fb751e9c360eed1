import csv
import io
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from smartstock.api.deps import require_permission
from smartstock.db.database import get_db
from smartstock.ledger.types import TransactionType
from smartstock.models.inventory import InventoryItem, StockTransaction, StockTransactionLine
from smartstock.models.user import User
from smartstock.schemas.reports import CategoryStockOut, DashboardSummaryOut, RecentActivityOut, ReportRowOut
from smartstock.schemas.transactions import to_naive_utc

router = APIRouter(prefix="/reports", tags=["Reports"])

ZERO = Decimal("0")
REPORT_COLUMNS = [
    "transaction_id",
    "date",
    "type",
    "reference",
    "supplier",
    "item_id",
    "item_name",
    "sku",
    "quantity",
    "unit",
    "base_quantity",
    "notes",
]


def _report_rows(
    db: Session,
    date_from: datetime | None,
    date_to: datetime | None,
    transaction_type: TransactionType | None,
    item_id: str | None,
) -> list[ReportRowOut]:
    query = (
        select(StockTransaction, StockTransactionLine)
        .join(StockTransactionLine, StockTransactionLine.transaction_id == StockTransaction.id)
        .order_by(StockTransaction.date.desc(), StockTransaction.id.asc(), StockTransactionLine.position.asc())
    )
    if date_from is not None:
        query = query.where(StockTransaction.date >= to_naive_utc(date_from))
    if date_to is not None:
        query = query.where(StockTransaction.date <= to_naive_utc(date_to))
    if transaction_type is not None:
        query = query.where(StockTransaction.type == transaction_type)
    if item_id:
        query = query.where(StockTransactionLine.item_id == item_id)

    return [
        ReportRowOut(
            transaction_id=tx.id,
            date=tx.date,
            type=tx.type,
            reference=tx.reference_number,
            supplier=tx.supplier,
            item_id=line.item_id,
            item_name=line.item_name,
            sku=line.sku,
            quantity=line.quantity,
            unit=line.unit,
            base_quantity=line.base_quantity,
            notes=tx.notes,
        )
        for tx, line in db.execute(query).all()
    ]


def _simple_pdf(lines: list[str]) -> bytes:
    def esc(text: str) -> str:
        return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    content_lines = ["BT", "/F1 9 Tf", "40 800 Td", "12 TL"]
    for line in lines[:60]:
        content_lines.append(f"({esc(line)}) Tj T*")
    content_lines.append("ET")
    stream = "\n".join(content_lines).encode("latin-1", errors="replace")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        f"<< /Length {len(stream)} >>\nstream\n".encode("ascii") + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Courier >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(out))
        out.extend(f"{number} 0 obj\n".encode("ascii") + obj + b"\nendobj\n")
    xref_start = len(out)
    out.extend(f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii"))
    for offset in offsets:
        out.extend(f"{offset:010d} 00000 n \n".encode("ascii"))
    out.extend(
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_start}\n%%EOF\n".encode("ascii")
    )
    return bytes(out)


@router.get("/transactions", response_model=list[ReportRowOut])
def transaction_report(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    item_id: str | None = None,
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    return _report_rows(db, date_from, date_to, transaction_type, item_id)


@router.get("/transactions/export/csv")
def export_transactions_csv(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    item_id: str | None = None,
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    rows = _report_rows(db, date_from, date_to, transaction_type, item_id)
    sio = io.StringIO()
    writer = csv.writer(sio)
    writer.writerow(REPORT_COLUMNS)
    for row in rows:
        writer.writerow(
            [
                row.transaction_id,
                row.date.isoformat(),
                row.type.value,
                row.reference or "",
                row.supplier or "",
                row.item_id,
                row.item_name,
                row.sku,
                str(row.quantity),
                row.unit,
                str(row.base_quantity),
                row.notes or "",
            ]
        )
    return Response(
        content=sio.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


@router.get("/transactions/export/pdf")
def export_transactions_pdf(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    transaction_type: TransactionType | None = Query(default=None, alias="type"),
    item_id: str | None = None,
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    rows = _report_rows(db, date_from, date_to, transaction_type, item_id)
    lines = ["Stock Transaction Report", f"Rows: {len(rows)}", ""]
    lines.append("date       | id              | type | item                 | qty        | unit")
    for row in rows:
        lines.append(
            f"{row.date:%Y-%m-%d} | {row.transaction_id:<15} | {row.type.value:<4} | "
            f"{row.item_name[:20]:<20} | {row.quantity:>10} | {row.unit}"
        )
    return Response(
        content=_simple_pdf(lines),
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="transactions.pdf"'},
    )


@router.get("/dashboard", response_model=DashboardSummaryOut)
def dashboard_summary(
    recent_limit: int = Query(default=10, ge=1, le=50),
    _: User = Depends(require_permission("reports:view")),
    db: Session = Depends(get_db),
):
    items = db.scalars(select(InventoryItem)).all()

    by_category: dict[str, CategoryStockOut] = {}
    for item in items:
        entry = by_category.setdefault(
            item.category,
            CategoryStockOut(category=item.category, total_stock=ZERO, item_count=0),
        )
        entry.total_stock += Decimal(item.stock)
        entry.item_count += 1

    totals = dict(
        db.execute(
            select(StockTransaction.type, func.coalesce(func.sum(StockTransactionLine.base_quantity), 0))
            .join(StockTransactionLine, StockTransactionLine.transaction_id == StockTransaction.id)
            .group_by(StockTransaction.type)
        ).all()
    )

    recent = db.execute(
        select(StockTransaction, StockTransactionLine)
        .join(StockTransactionLine, StockTransactionLine.transaction_id == StockTransaction.id)
        .order_by(StockTransaction.date.desc(), StockTransactionLine.position.asc())
        .limit(recent_limit)
    ).all()

    return DashboardSummaryOut(
        total_items=len(items),
        active_items=sum(1 for item in items if item.status == "active"),
        low_stock_items=sum(1 for item in items if item.stock <= item.min_stock),
        total_stock_value=sum((Decimal(item.stock) * Decimal(item.price) for item in items), ZERO),
        total_transactions=db.scalar(select(func.count(StockTransaction.id))) or 0,
        total_in_base_quantity=Decimal(str(totals.get(TransactionType.IN, 0))),
        total_out_base_quantity=Decimal(str(totals.get(TransactionType.OUT, 0))),
        stock_by_category=sorted(by_category.values(), key=lambda entry: entry.category),
        recent_activity=[
            RecentActivityOut(
                transaction_id=tx.id,
                date=tx.date,
                type=tx.type,
                item_name=line.item_name,
                quantity=line.quantity,
                unit=line.unit,
            )
            for tx, line in recent
        ],
    )
