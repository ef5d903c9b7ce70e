"""Application factory.

Run with::

    uvicorn saas_billing.main:create_app --factory --port 8080

or ``saas-billing`` (the console script), which reads PORT from the
environment.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from saas_billing.api.auth import router as auth_router
from saas_billing.api.billing import router as billing_router
from saas_billing.api.context import AppContext
from saas_billing.api.errors import register_exception_handlers
from saas_billing.api.health import router as health_router
from saas_billing.api.metrics_endpoint import router as metrics_router
from saas_billing.api.orgs import router as orgs_router
from saas_billing.core.config import Settings, load_settings
from saas_billing.core.logging import setup_logging
from saas_billing.db.engine import create_engine_from_url, create_session_factory
from saas_billing.db.redis import create_redis_client, lifespan_redis
from saas_billing.middleware.metrics import MetricsMiddleware
from saas_billing.middleware.request_context import RequestContextMiddleware
from saas_billing.middleware.security import SecurityHeadersMiddleware
from saas_billing.repos.store import InMemoryStore, SqlStore, Store
from saas_billing.services.billing_service import SubscriptionLedger
from saas_billing.services.cache import (
    CacheService,
    InMemoryCacheService,
    RedisCacheService,
)
from saas_billing.services.credential_service import CredentialService
from saas_billing.services.org_service import OrganizationDirectory
from saas_billing.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimiter,
    RedisRateLimiter,
)
from saas_billing.services.token_service import TokenService, load_private_key

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> Store:
    if settings.database_url is None:
        logger.info("No DATABASE_URL configured, using in-memory store")
        return InMemoryStore()
    engine = create_engine_from_url(
        settings.database_url, timeout_seconds=settings.db_timeout_seconds
    )
    return SqlStore(engine, create_session_factory(engine))


def build_context(settings: Settings) -> AppContext:
    """Wire the store, backing services and domain services for *settings*."""
    store = build_store(settings)

    redis_client = None
    cache: CacheService
    rate_limiter: RateLimiter
    if settings.redis_url is not None:
        redis_client = create_redis_client(
            settings.redis_url, timeout_seconds=settings.db_timeout_seconds
        )
        cache = RedisCacheService(redis_client)
        rate_limiter = RedisRateLimiter(redis_client)
    else:
        cache = InMemoryCacheService()
        rate_limiter = InMemoryRateLimiter()

    tokens = TokenService(
        load_private_key(settings.jwt_private_key_path),
        ttl=timedelta(minutes=settings.access_token_ttl_min),
    )
    return AppContext(
        settings=settings,
        store=store,
        tokens=tokens,
        credentials=CredentialService(store, tokens),
        directory=OrganizationDirectory(store),
        ledger=SubscriptionLedger(
            store, cache, plans_cache_ttl_seconds=settings.plans_cache_ttl_seconds
        ),
        cache=cache,
        rate_limiter=rate_limiter,
        redis=redis_client,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    ctx = build_context(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
        async with lifespan_redis(ctx.redis):
            try:
                yield
            finally:
                if isinstance(ctx.store, SqlStore):
                    await ctx.store.dispose()

    app = FastAPI(
        title="saas-billing",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.ctx = ctx

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "Retry-After"],
        )

    # Last added runs first (outermost):
    # SecurityHeaders -> RequestContext -> Metrics -> CORS -> route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(auth_router)
    app.include_router(orgs_router)
    app.include_router(billing_router)

    logger.info(
        "saas-billing configured  env=%s log_level=%s store=%s redis=%s docs=%s",
        settings.app_env,
        settings.log_level,
        type(ctx.store).__name__,
        "on" if ctx.redis is not None else "off",
        "on" if settings.is_dev else "off",
    )
    return app


def main() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
