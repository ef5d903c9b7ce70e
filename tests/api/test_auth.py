"""Register / login endpoint tests."""

from __future__ import annotations

from uuid import UUID

from fastapi.testclient import TestClient

from saas_billing.api.context import AppContext
from tests.conftest import DEFAULT_PASSWORD, register_user

REGISTER = "/api/v1/auth/register"
LOGIN = "/api/v1/auth/login"


def test_register_returns_201_with_user(client: TestClient) -> None:
    resp = client.post(REGISTER, json={"email": "a@example.com", "password": DEFAULT_PASSWORD})
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["message"] == "User registered successfully"
    assert body["data"]["user"]["email"] == "a@example.com"
    UUID(body["data"]["user"]["id"])
    assert "password_hash" not in body["data"]["user"]
    assert "timestamp" in body["metadata"]


def test_register_normalizes_email(client: TestClient) -> None:
    resp = client.post(
        REGISTER, json={"email": "  Mixed.Case@Example.COM ", "password": DEFAULT_PASSWORD}
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["email"] == "mixed.case@example.com"

    resp = client.post(
        LOGIN, json={"email": "mixed.case@example.com", "password": DEFAULT_PASSWORD}
    )
    assert resp.status_code == 200


def test_register_duplicate_email_is_409(client: TestClient) -> None:
    client.post(REGISTER, json={"email": "dup@example.com", "password": DEFAULT_PASSWORD})
    resp = client.post(
        REGISTER, json={"email": "DUP@example.com", "password": "another-password"}
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "EMAIL_ALREADY_EXISTS"


def test_register_rejects_short_password(client: TestClient) -> None:
    resp = client.post(REGISTER, json={"email": "short@example.com", "password": "1234567"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"


def test_register_accepts_eight_character_password(client: TestClient) -> None:
    resp = client.post(REGISTER, json={"email": "eight@example.com", "password": "12345678"})
    assert resp.status_code == 201


def test_register_rejects_invalid_email(client: TestClient) -> None:
    resp = client.post(REGISTER, json={"email": "not-an-email", "password": DEFAULT_PASSWORD})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"


def test_register_rejects_missing_fields(client: TestClient) -> None:
    resp = client.post(REGISTER, json={"email": "x@example.com"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "INVALID_REQUEST"
    assert "password" in body["error"]["details"]


def test_login_returns_token_that_authenticates(client: TestClient, ctx: AppContext) -> None:
    user_id, token = register_user(client, email="login@example.com")
    assert ctx.tokens.validate(token) == user_id


def test_wrong_password_and_unknown_email_are_indistinguishable(
    client: TestClient,
) -> None:
    register_user(client, email="known@example.com")

    wrong_password = client.post(
        LOGIN, json={"email": "known@example.com", "password": "wrong-password"}
    )
    unknown_email = client.post(
        LOGIN, json={"email": "nobody@example.com", "password": "wrong-password"}
    )

    assert wrong_password.status_code == unknown_email.status_code == 401
    a = wrong_password.json()["error"]
    b = unknown_email.json()["error"]
    assert a["code"] == b["code"] == "INVALID_CREDENTIALS"
    assert a["message"] == b["message"] == "Invalid credentials"
    assert "details" not in a and "details" not in b


def test_login_malformed_body_is_400(client: TestClient) -> None:
    resp = client.post(LOGIN, json={"email": 42})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_REQUEST"
