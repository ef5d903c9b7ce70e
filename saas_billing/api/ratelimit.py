"""Rate limiting dependency for FastAPI routes.

A dependency rather than a middleware so each router picks its limit:

  /api/v1/auth/*  AUTH_RATE_LIMIT per window (brute-force protection)
  /api/v1/*       API_RATE_LIMIT per window
  /health         unlimited

Clients are keyed by IP.  Limits are per scope, so login attempts do not
eat into a client's billing API quota.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import Any, Literal

from fastapi import Request

from saas_billing.api.context import get_context
from saas_billing.api.errors import store_errors
from saas_billing.core.errors import RateLimitExceededError
from saas_billing.core.metrics import RATE_LIMIT_HITS
from saas_billing.services.rate_limiter import RateLimitConfig

logger = logging.getLogger(__name__)

Scope = Literal["auth", "api"]


def require_rate_limit(scope: Scope) -> Callable[[Request], Coroutine[Any, Any, None]]:
    """Dependency factory: enforce the *scope* limit from Settings.

    Usage::

        router = APIRouter(dependencies=[Depends(require_rate_limit("auth"))])
    """

    async def _check(request: Request) -> None:
        ctx = get_context(request)
        settings = ctx.settings
        config = RateLimitConfig(
            limit=settings.auth_rate_limit if scope == "auth" else settings.api_rate_limit,
            window_seconds=settings.rate_limit_window_seconds,
        )
        key = f"{scope}:{_client_key(request)}"

        with store_errors("RATE_LIMIT_ERROR", "Rate limiting failed"):
            result = await ctx.rate_limiter.check(key, config)

        if not result.allowed:
            RATE_LIMIT_HITS.labels(scope=scope).inc()
            logger.warning("Rate limit exceeded key=%s", key)
            raise RateLimitExceededError(
                "Too many requests",
                headers={
                    "Retry-After": str(int(result.retry_after) + 1),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check


def _client_key(request: Request) -> str:
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"
