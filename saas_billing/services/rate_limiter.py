"""Rate limiting using a sliding window log.

Each client key keeps the timestamps of its accepted requests.  A new
request is allowed when fewer than ``limit`` timestamps fall inside the
last ``window_seconds``.  Unlike a fixed window there is no boundary
burst (100 requests at 11:59:59 plus 100 at 12:00:01), and at the
request rates of an auth or billing API the per-client log stays small.

Two backends share the ``RateLimiter`` protocol:

  InMemoryRateLimiter -- a deque per key, single process only
  RedisRateLimiter    -- a sorted set per key scored by timestamp, shared
                         by every API instance
"""

from __future__ import annotations

import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import redis.asyncio as aioredis


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """The outcome of a rate limit check.

    allowed:      True if the request may proceed.
    remaining:    Requests left in the current window.
    limit:        The window's capacity.
    retry_after:  Seconds until the oldest request leaves the window
                  (0 if allowed).
    """

    allowed: bool
    remaining: int
    limit: int
    retry_after: float


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """limit requests per window_seconds, per key."""

    limit: int = 100
    window_seconds: int = 60


@runtime_checkable
class RateLimiter(Protocol):
    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult: ...


class InMemoryRateLimiter:
    """In-memory sliding window, for single-process dev and tests.

    With several API instances each process would keep its own log and
    a client could get ``limit`` requests from every instance; Redis
    fixes that by sharing one log.

    Like the Redis key TTL, a key expires one window after its last
    accepted request; expired keys are swept at most once per
    SWEEP_INTERVAL_SECONDS.
    """

    SWEEP_INTERVAL_SECONDS = 60.0

    def __init__(self) -> None:
        self._windows: dict[str, deque[float]] = {}
        self._expires_at: dict[str, float] = {}
        self._next_sweep = 0.0

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        now = time.monotonic()
        self._sweep(now)
        window = self._windows.setdefault(key, deque())

        # Step 1: drop timestamps that slid out of the window
        cutoff = now - config.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

        # Step 2: reject if the window is full
        if len(window) >= config.limit:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=config.limit,
                retry_after=max(window[0] + config.window_seconds - now, 0.0),
            )

        # Step 3: record this request
        window.append(now)
        self._expires_at[key] = now + config.window_seconds
        return RateLimitResult(
            allowed=True,
            remaining=config.limit - len(window),
            limit=config.limit,
            retry_after=0,
        )

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        self._next_sweep = now + self.SWEEP_INTERVAL_SECONDS
        for key in [k for k, expires in self._expires_at.items() if expires <= now]:
            del self._expires_at[key]
            self._windows.pop(key, None)


class RedisRateLimiter:
    """Redis sorted-set sliding window, shared across all API instances.

    One pipelined round trip per request: trim expired members, add this
    request, count, refresh the key's TTL, and read the oldest member
    for Retry-After.  A rejected request's member is removed again so
    that rejected traffic does not keep a client locked out.
    """

    _PREFIX = "ratelimit:"

    def __init__(self, redis_client: aioredis.Redis) -> None:
        self._redis = redis_client

    async def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        redis_key = f"{self._PREFIX}{key}"
        now = time.time()
        member = f"{now:.6f}:{uuid.uuid4().hex[:8]}"

        pipe = self._redis.pipeline(transaction=True)
        pipe.zremrangebyscore(redis_key, 0, now - config.window_seconds)
        pipe.zadd(redis_key, {member: now})
        pipe.zcard(redis_key)
        pipe.expire(redis_key, config.window_seconds)
        pipe.zrange(redis_key, 0, 0, withscores=True)
        _, _, count, _, oldest = await pipe.execute()

        if count > config.limit:
            await self._redis.zrem(redis_key, member)
            oldest_score = oldest[0][1] if oldest else now
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=config.limit,
                retry_after=max(oldest_score + config.window_seconds - now, 0.0),
            )

        return RateLimitResult(
            allowed=True,
            remaining=config.limit - count,
            limit=config.limit,
            retry_after=0,
        )
