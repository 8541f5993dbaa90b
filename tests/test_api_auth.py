"""API tests for /auth-service and end-to-end token use."""

from __future__ import annotations

from fastapi.testclient import TestClient

from tests.fakes import build_test_client


_REGISTRATION = {
    "email": "jane@example.com",
    "password": "hunter22",
    "firstName": "Jane",
    "lastName": "Doe",
}


def _register(client: TestClient, **overrides: str):
    return client.post("/auth-service?action=register", json={**_REGISTRATION, **overrides})


def test_register_returns_user_and_token(monkeypatch) -> None:
    client = build_test_client(monkeypatch)

    response = _register(client)

    assert response.status_code == 201
    payload = response.json()
    assert payload["success"] is True
    assert payload["function"] == "auth-service"
    data = payload["data"]
    assert data["expiresIn"] == "24h"
    assert data["token"]
    user = data["user"]
    assert user["email"] == "jane@example.com"
    assert user["firstName"] == "Jane"
    assert user["isEmailVerified"] is False
    assert user["profile"] == {"avatar": None, "currency": "USD", "timezone": "America/New_York"}
    assert "passwordHash" not in user
    assert "password" not in user


def test_register_duplicate_email_is_rejected(monkeypatch) -> None:
    client = build_test_client(monkeypatch)
    _register(client)

    response = _register(client, email="JANE@example.com")

    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


def test_register_validation_failures(monkeypatch) -> None:
    client = build_test_client(monkeypatch)

    bad_email = _register(client, email="not-an-email")
    short_password = _register(client, password="abc")
    missing_body = client.post("/auth-service?action=register")

    assert bad_email.status_code == 400
    assert short_password.status_code == 400
    assert missing_body.status_code == 400
    assert missing_body.json()["error"] == "Request body is required"


def test_login_and_verify_round_trip(monkeypatch) -> None:
    client = build_test_client(monkeypatch)
    registered = _register(client).json()["data"]

    login = client.post(
        "/auth-service?action=login",
        json={"email": "Jane@Example.com", "password": "hunter22"},
    )
    token = login.json()["data"]["token"]
    verify = client.get("/auth-service?action=verify", headers={"Authorization": f"Bearer {token}"})

    assert login.status_code == 200
    assert verify.status_code == 200
    assert verify.json()["success"] is True
    assert verify.json()["user"]["id"] == registered["user"]["id"]


def test_login_with_wrong_password_is_unauthorized(monkeypatch) -> None:
    client = build_test_client(monkeypatch)
    _register(client)

    response = client.post(
        "/auth-service?action=login",
        json={"email": "jane@example.com", "password": "wrong-password"},
    )

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid email or password"


def test_verify_requires_valid_bearer_token(monkeypatch) -> None:
    client = build_test_client(monkeypatch)

    missing = client.get("/auth-service?action=verify")
    invalid = client.get("/auth-service?action=verify", headers={"Authorization": "Bearer garbage"})

    assert missing.status_code == 401
    assert missing.json()["error"] == "Authorization token required"
    assert invalid.status_code == 401
    assert invalid.json()["error"] == "Invalid or expired token"


def test_health_reports_healthy(monkeypatch) -> None:
    client = build_test_client(monkeypatch)

    response = client.get("/auth-service?action=health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["timestamp"]


def test_invalid_actions_are_rejected(monkeypatch) -> None:
    client = build_test_client(monkeypatch)

    post = client.post("/auth-service?action=logout", json=_REGISTRATION)
    get = client.get("/auth-service")

    assert post.status_code == 400
    assert post.json()["error"] == "Invalid action. Use action=register or action=login"
    assert get.status_code == 400
    assert get.json()["error"] == "Invalid action. Use action=verify or action=health"


def test_issued_token_authorizes_transaction_functions(monkeypatch) -> None:
    client = build_test_client(monkeypatch)
    token = _register(client).json()["data"]["token"]
    headers = {"Authorization": f"Bearer {token}"}

    created = client.post(
        "/transaction-api",
        json={"amount": 20, "description": "Books", "category": "education", "date": "2025-03-01", "type": "expense"},
        headers=headers,
    )
    listing = client.get("/transaction-api", headers=headers)

    assert created.status_code == 201
    assert listing.json()["pagination"]["total"] == 1
