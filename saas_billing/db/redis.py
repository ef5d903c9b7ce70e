"""Redis connection management.

Redis backs the two pieces of shared, ephemeral state: rate-limit
windows and the plan-catalog cache.  When REDIS_URL is not configured
(local dev, tests) both fall back to in-memory implementations and no
Redis server is needed.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str, *, timeout_seconds: int = 5) -> aioredis.Redis:
    return aioredis.from_url(
        redis_url,
        decode_responses=True,  # str instead of bytes
        max_connections=20,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
    )


@asynccontextmanager
async def lifespan_redis(client: aioredis.Redis | None) -> AsyncIterator[None]:
    """Ping Redis on startup and close the pool on shutdown."""
    if client is None:
        logger.info("No REDIS_URL configured, using in-memory rate limiter and cache")
        yield
        return

    try:
        await client.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except aioredis.RedisError:
        # Keep serving; requests that need Redis fail with a 500 until it
        # comes back, and /health reports it as degraded.
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
