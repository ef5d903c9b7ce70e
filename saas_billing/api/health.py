"""Health endpoint.

The store is critical: if it cannot be pinged within DB_TIMEOUT_SECONDS
the instance reports 500 DATABASE_ERROR and should be taken out of
rotation.  Redis is not: when it is down the rate limiter and plan
cache fail per request, so it is reported as ``degraded`` with a 200.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as aioredis
from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from saas_billing.api import envelope
from saas_billing.api.context import Ctx
from saas_billing.api.envelope import ApiResponse
from saas_billing.core.errors import DependencyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=ApiResponse[dict], response_model_exclude_none=True)
async def health(ctx: Ctx) -> ApiResponse[dict]:
    checks: dict[str, str] = {}

    # --- Database check ---
    try:
        await asyncio.wait_for(ctx.store.ping(), timeout=ctx.settings.db_timeout_seconds)
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError, TimeoutError) as e:
        logger.error("Health check: database unreachable: %s", e)
        raise DependencyError(
            "Database connection failed", code="DATABASE_ERROR"
        ) from e

    # --- Redis check ---
    if ctx.redis is not None:
        try:
            await ctx.redis.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except (aioredis.RedisError, OSError):
            logger.warning("Health check: redis unreachable")
            checks["redis"] = "degraded"
    else:
        checks["redis"] = "not_configured"

    return envelope.success({"status": "healthy", "checks": checks})
