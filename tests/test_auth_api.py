from smartstock.api.routes.auth import LoginThrottle
from smartstock.core.config import settings


def test_login_with_username_or_email(client, admin_user):
    response = client.post("/auth/login", json={"identity": "admin", "password": "password123"})
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "admin"

    response = client.post("/auth/login", json={"email": "ADMIN@inventory.local", "password": "password123"})
    assert response.status_code == 200

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "admin"


def test_oauth2_token_form(client, staff_user):
    response = client.post("/auth/token", data={"username": "staff01", "password": "password123"})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "staff"


def test_wrong_password_is_401(client, admin_user):
    response = client.post("/auth/login", json={"identity": "admin", "password": "nope"})
    assert response.status_code == 401


def test_login_rate_limit(client, admin_user):
    for _ in range(settings.login_rate_limit_max_attempts):
        client.post("/auth/login", json={"identity": "admin", "password": "nope"})
    response = client.post("/auth/login", json={"identity": "admin", "password": "password123"})
    assert response.status_code == 429


def test_admin_manages_users(client, admin_headers):
    response = client.post(
        "/auth/users",
        json={
            "name": "Siti Aminah",
            "email": "siti@inventory.com",
            "username": "siti",
            "password": "staffpassword",
        },
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    user_id = response.json()["id"]
    assert response.json()["role"] == "staff"

    duplicate = client.post(
        "/auth/users",
        json={"name": "Dup", "email": "siti@inventory.com", "username": "siti2", "password": "staffpassword"},
        headers=admin_headers,
    )
    assert duplicate.status_code == 409

    response = client.put(f"/auth/users/{user_id}", json={"role": "admin"}, headers=admin_headers)
    assert response.json()["role"] == "admin"

    usernames = [user["username"] for user in client.get("/auth/users", headers=admin_headers).json()]
    assert usernames == ["admin", "siti"]

    assert client.delete(f"/auth/users/{user_id}", headers=admin_headers).status_code == 204
    assert client.delete(f"/auth/users/{user_id}", headers=admin_headers).status_code == 404


def test_admin_cannot_delete_self(client, admin_user, admin_headers):
    assert client.delete(f"/auth/users/{admin_user.id}", headers=admin_headers).status_code == 400


def test_staff_cannot_manage_users(client, staff_headers):
    assert client.get("/auth/users", headers=staff_headers).status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_login_throttle_is_keyed_per_identity(client, admin_user, staff_user):
    for _ in range(settings.login_rate_limit_max_attempts):
        client.post("/auth/login", json={"identity": "Admin", "password": "nope"})
    assert client.post("/auth/login", json={"identity": "admin", "password": "password123"}).status_code == 429
    assert client.post("/auth/login", json={"identity": "staff01", "password": "password123"}).status_code == 200


def test_login_throttle_window_expires():
    throttle = LoginThrottle(window_seconds=60, max_failures=2)
    throttle.record_failure("10.0.0.1", "admin")
    throttle.record_failure("10.0.0.1", "ADMIN")
    assert throttle.is_blocked("10.0.0.1", "admin")
    assert not throttle.is_blocked("10.0.0.2", "admin")

    throttle.window_seconds = 0
    assert not throttle.is_blocked("10.0.0.1", "admin")
