from __future__ import annotations

import asyncio
from collections.abc import Iterator
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from saas_billing.api.context import AppContext
from saas_billing.core.config import Settings
from saas_billing.main import create_app
from saas_billing.models.billing import Plan

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest.fixture
def settings() -> Settings:
    """Test settings: in-memory store, no Redis, limits high enough to stay out of the way."""
    return Settings(app_env="test", auth_rate_limit=1000, api_rate_limit=1000)


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def ctx(app: FastAPI) -> AppContext:
    return app.state.ctx


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


def mint_token(ctx: AppContext, user_id: UUID | None = None) -> str:
    """A valid session token for *user_id* (random if omitted)."""
    return ctx.tokens.create_session_token(sub=str(user_id or uuid4()))


def register_user(
    client: TestClient,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
) -> tuple[UUID, str]:
    """Register and log in through the API. Returns (user_id, token)."""
    email = email or f"user-{uuid4().hex[:8]}@example.com"
    resp = client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.json()
    user_id = UUID(resp.json()["data"]["user"]["id"])

    resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.json()
    return user_id, resp.json()["data"]["token"]


def create_org(client: TestClient, token: str, name: str = "Acme") -> str:
    resp = client.post("/api/v1/organizations", json={"name": name}, headers=auth(token))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]["id"]


def add_member(
    client: TestClient, owner_token: str, org_id: str, user_id: UUID, role: str
) -> None:
    resp = client.post(
        f"/api/v1/organizations/{org_id}/members",
        json={"user_id": str(user_id), "role": role},
        headers=auth(owner_token),
    )
    assert resp.status_code == 200, resp.json()


def create_plan(
    ctx: AppContext,
    name: str = "Pro",
    price_cents: int = 2900,
    interval: str = "month",
) -> Plan:
    """Catalog plans have no HTTP endpoint; seed them through the ledger."""
    return asyncio.run(
        ctx.ledger.create_plan(
            name=name,
            description=f"{name} plan",
            price_cents=price_cents,
            interval=interval,
        )
    )
