"""Tests for Prometheus metrics middleware.

prometheus_client uses a process-global registry and counters cannot be
reset, so these tests assert on deltas: read, act, read again.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import auth, create_org, register_user


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    after = _get_sample("http_requests_total", labels)
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before >= 1


def test_endpoint_label_is_route_template(client: TestClient) -> None:
    """Per-org URLs collapse onto one series."""
    _, token = register_user(client)
    org_id = create_org(client, token)
    labels = {
        "method": "GET",
        "endpoint": "/api/v1/organizations/{org_id}/billing/plans",
        "status_code": "200",
    }
    before = _get_sample("http_requests_total", labels)
    client.get(f"/api/v1/organizations/{org_id}/billing/plans", headers=auth(token))
    after = _get_sample("http_requests_total", labels)
    assert after - before >= 1


def test_login_outcomes_are_counted(client: TestClient) -> None:
    before = _get_sample("login_attempts_total", {"result": "failure"})
    client.post(
        "/api/v1/auth/login", json={"email": "ghost@example.com", "password": "whatever1"}
    )
    after = _get_sample("login_attempts_total", {"result": "failure"})
    assert after - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text
