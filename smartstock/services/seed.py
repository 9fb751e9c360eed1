import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from smartstock.core.config import settings
from smartstock.core.security import hash_password
from smartstock.ledger.types import LedgerTransaction, LineItemRequest, TransactionType
from smartstock.ledger.units import UnitConversion
from smartstock.models.inventory import InventoryItem, ItemUnitConversion
from smartstock.models.user import User, UserRole
from smartstock.services.ledger_store import inventory_engine, replace_conversions

logger = logging.getLogger(__name__)

DEMO_ITEMS = [
    ("1", "Laptop Gaming X1", "ELEC-001", "Electronics", "unit", (), 12, 5, "15000000"),
    ("2", "Mouse Wireless Pro", "ACC-002", "Accessories", "pcs", (("Box", 10),), 45, 10, "250000"),
    ("3", "Monitor 24 Inch", "ELEC-003", "Electronics", "unit", (), 3, 8, "2100000"),
    ("4", "Keyboard Mechanical", "ACC-004", "Accessories", "pcs", (), 20, 5, "850000"),
    ("5", "USB Hub Type-C", "ACC-005", "Accessories", "pcs", (), 2, 15, "150000"),
]

# already reflected in the demo stock levels; recorded as history only
DEMO_TRANSACTIONS = [
    (
        "TX-1001", TransactionType.IN, datetime(2023, 10, 1, 10, 0),
        "SJ-001", "Initial Stock", "Admin", [("1", 10, "unit")],
    ),
    (
        "TX-1002", TransactionType.IN, datetime(2023, 10, 2, 11, 0),
        "SJ-002", "Vendor delivery", "Admin", [("2", 50, "pcs")],
    ),
    (
        "TX-1003", TransactionType.OUT, datetime(2023, 10, 5, 14, 30),
        None, "Sales Order #101", "Staff", [("2", 5, "pcs")],
    ),
]


def bootstrap_admin(db: Session) -> User | None:
    if not settings.bootstrap_admin_enabled:
        return None
    if db.scalar(select(func.count(User.id)).where(User.role == UserRole.ADMIN)):
        return None
    username = settings.bootstrap_admin_username
    existing = db.scalar(
        select(User).where(
            or_(User.username == username, func.lower(User.email) == settings.bootstrap_admin_email.lower())
        )
    )
    if existing:
        return None

    admin = User(
        name="Administrator",
        email=settings.bootstrap_admin_email.lower(),
        username=username,
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=UserRole.ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.warning("Bootstrapped admin account '%s'; change its password", username)
    return admin


def seed_demo_data(db: Session) -> int:
    if db.scalar(select(func.count(InventoryItem.id))):
        return 0

    for item_id, name, sku, category, base_unit, conversions, stock, min_stock, price in DEMO_ITEMS:
        item = InventoryItem(
            id=item_id,
            name=name,
            sku=sku,
            category=category,
            base_unit=base_unit,
            stock=Decimal(stock),
            min_stock=Decimal(min_stock),
            price=Decimal(price),
        )
        replace_conversions(
            item,
            ItemUnitConversion,
            tuple(UnitConversion(name=unit, factor=Decimal(factor)) for unit, factor in conversions),
        )
        db.add(item)
    db.flush()

    engine = inventory_engine(db)
    for tx_id, tx_type, date, reference, notes, performer, lines in DEMO_TRANSACTIONS:
        admitted = engine.admit_lines(
            LineItemRequest(item_id=item_id, quantity=quantity, unit=unit) for item_id, quantity, unit in lines
        )
        engine.store.create(
            LedgerTransaction(
                id=tx_id,
                type=tx_type,
                date=date,
                lines=admitted,
                attributes={"reference_number": reference, "notes": notes, "performer": performer},
            )
        )
    db.commit()
    logger.info("Seeded %d demo items and %d transactions", len(DEMO_ITEMS), len(DEMO_TRANSACTIONS))
    return len(DEMO_ITEMS)
