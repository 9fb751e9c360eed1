from dataclasses import replace
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from smartstock.core.config import settings
from smartstock.core.security import verify_password
from smartstock.ledger import replay
from smartstock.models.inventory import InventoryItem, StockTransaction
from smartstock.models.user import User, UserRole
from smartstock.services import seed
from smartstock.services.ledger_store import inventory_engine, load_stock_card


@pytest.fixture()
def bootstrap_enabled(monkeypatch):
    monkeypatch.setattr(seed, "settings", replace(settings, bootstrap_admin_enabled=True))


def test_bootstrap_admin_creates_one_admin(db_session, bootstrap_enabled):
    admin = seed.bootstrap_admin(db_session)
    assert admin is not None
    assert admin.role == UserRole.ADMIN
    assert admin.username == settings.bootstrap_admin_username
    assert verify_password(settings.bootstrap_admin_password, admin.password_hash)

    assert seed.bootstrap_admin(db_session) is None
    assert db_session.scalar(select(func.count(User.id))) == 1


def test_bootstrap_admin_skips_when_disabled(db_session):
    assert seed.bootstrap_admin(db_session) is None
    assert db_session.scalar(select(func.count(User.id))) == 0


def test_bootstrap_admin_skips_when_an_admin_exists(db_session, admin_user, bootstrap_enabled):
    assert seed.bootstrap_admin(db_session) is None


def test_seed_demo_data_records_history_without_moving_stock(db_session):
    assert seed.seed_demo_data(db_session) == len(seed.DEMO_ITEMS)

    mouse = db_session.get(InventoryItem, "2")
    assert Decimal(mouse.stock) == Decimal("45")
    assert [conv.name for conv in mouse.conversions] == ["Box"]
    assert db_session.scalar(select(func.count(StockTransaction.id))) == len(seed.DEMO_TRANSACTIONS)

    assert seed.seed_demo_data(db_session) == 0


def test_seeded_history_rebuilds_consistent_stock_cards(db_session):
    seed.seed_demo_data(db_session)
    engine = inventory_engine(db_session)

    mouse_card = load_stock_card(engine, db_session.get(InventoryItem, "2"))
    assert [entry.transaction.id for entry in mouse_card.entries] == ["TX-1003", "TX-1002"]
    assert mouse_card.opening_balance == Decimal("0")
    assert replay(mouse_card) == Decimal("45")

    laptop_card = load_stock_card(engine, db_session.get(InventoryItem, "1"))
    assert laptop_card.opening_balance == Decimal("2")
    assert replay(laptop_card) == Decimal("12")
