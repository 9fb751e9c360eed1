import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["BOOTSTRAP_ADMIN_ENABLED"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import smartstock.models  # noqa: F401
from smartstock.api.routes.auth import login_throttle
from smartstock.core.security import create_access_token, hash_password
from smartstock.db.database import Base, build_engine, get_db
from smartstock.main import app
from smartstock.models.user import User, UserRole

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    login_throttle.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db: Session, username: str, role: UserRole, password: str = "password123") -> User:
    user = User(
        name=username.title(),
        email=f"{username}@inventory.local",
        username=username,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin", UserRole.ADMIN)


@pytest.fixture()
def staff_user(db_session: Session) -> User:
    return _make_user(db_session, "staff01", UserRole.STAFF)


def _headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.username, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    return _headers(admin_user)


@pytest.fixture()
def staff_headers(staff_user: User) -> dict[str, str]:
    return _headers(staff_user)


@pytest.fixture()
def mouse(client: TestClient, admin_headers: dict[str, str]) -> dict:
    response = client.post(
        "/inventory/items",
        json={
            "id": "2",
            "name": "Mouse Wireless Pro",
            "sku": "acc-002",
            "category": "Accessories",
            "base_unit": "pcs",
            "conversions": [{"name": "Box", "factor": "10"}],
            "stock": "45",
            "min_stock": "10",
            "price": "250000",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture()
def keyboard(client: TestClient, admin_headers: dict[str, str]) -> dict:
    response = client.post(
        "/inventory/items",
        json={
            "id": "4",
            "name": "Keyboard Mechanical",
            "sku": "ACC-004",
            "category": "Accessories",
            "stock": "20",
            "min_stock": "5",
            "price": "850000",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    return response.json()
