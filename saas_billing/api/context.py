from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request

from saas_billing.core.config import Settings
from saas_billing.repos.store import Store
from saas_billing.services.billing_service import SubscriptionLedger
from saas_billing.services.cache import CacheService
from saas_billing.services.credential_service import CredentialService
from saas_billing.services.org_service import OrganizationDirectory
from saas_billing.services.rate_limiter import RateLimiter
from saas_billing.services.token_service import TokenService


@dataclass(frozen=True)
class AppContext:
    """Everything a request handler may need, built once by create_app.

    Lives on ``app.state.ctx``; routes reach it through the ``Ctx``
    dependency instead of importing module-level singletons.
    """

    settings: Settings
    store: Store
    tokens: TokenService
    credentials: CredentialService
    directory: OrganizationDirectory
    ledger: SubscriptionLedger
    cache: CacheService
    rate_limiter: RateLimiter
    redis: aioredis.Redis | None = None


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx


Ctx = Annotated[AppContext, Depends(get_context)]
