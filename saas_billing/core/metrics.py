"""Prometheus metric inventory.

All metrics are defined here so there is one place to see everything the
service measures.  Modules import the metric they own and increment or
observe it at the point of action.  The registry is the prometheus_client
default registry, scraped via GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application metrics
# ---------------------------------------------------------------------------

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["scope"],  # "auth" or "api"
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)

LOGIN_ATTEMPTS = Counter(
    "login_attempts_total",
    "Login attempts by outcome",
    ["result"],  # "success" or "failure"
)

SUBSCRIPTIONS_CREATED = Counter(
    "subscriptions_created_total",
    "Subscriptions created, by plan billing interval",
    ["interval"],  # "month" or "year"
)

INVOICED_CENTS = Counter(
    "invoiced_cents_total",
    "Sum of invoice amounts issued, in cents",
)
