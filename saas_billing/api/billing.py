"""Billing endpoints, scoped to one organization.

Every route requires the caller to be an owner or admin of ``{org_id}``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict

from saas_billing.api import envelope
from saas_billing.api.context import Ctx
from saas_billing.api.dependencies import require_org_role, scoped_org_id
from saas_billing.api.envelope import ApiResponse
from saas_billing.api.errors import store_errors
from saas_billing.api.ratelimit import require_rate_limit
from saas_billing.core.errors import SubscriptionNotFoundError
from saas_billing.models.billing import BillingInterval, InvoiceStatus, SubscriptionStatus
from saas_billing.models.organization import Role
from saas_billing.models.principal import Principal

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/organizations/{org_id}/billing",
    tags=["billing"],
    dependencies=[Depends(require_rate_limit("api"))],
)

BillingManager = Annotated[
    Principal, Depends(require_org_role(Role.OWNER, Role.ADMIN))
]


# --- Pydantic schemas ---


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    price_cents: int
    interval: BillingInterval
    created_at: datetime


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    created_at: datetime


class InvoiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subscription_id: UUID
    amount_cents: int
    status: InvoiceStatus
    due_date: datetime
    paid_at: datetime | None = None
    created_at: datetime


# --- Endpoints ---


@router.get(
    "/plans",
    response_model=ApiResponse[list[PlanOut]],
    response_model_exclude_none=True,
)
async def list_plans(_principal: BillingManager, ctx: Ctx) -> ApiResponse[list[PlanOut]]:
    """The plan catalog, cheapest first."""
    with store_errors("PLANS_FETCH_ERROR", "Failed to fetch plans"):
        plans = await ctx.ledger.list_plans()
    return envelope.success([PlanOut.model_validate(p) for p in plans])


@router.post(
    "/subscribe/{plan_id}",
    response_model=ApiResponse[SubscriptionOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def subscribe(
    plan_id: UUID, principal: BillingManager, ctx: Ctx
) -> ApiResponse[SubscriptionOut]:
    """Subscribe the organization to a plan and issue its first invoice."""
    with store_errors("SUBSCRIPTION_CREATE_ERROR", "Failed to create subscription"):
        subscription = await ctx.ledger.subscribe(scoped_org_id(principal), plan_id)
    return envelope.success(SubscriptionOut.model_validate(subscription))


@router.get(
    "/subscription",
    response_model=ApiResponse[SubscriptionOut],
    response_model_exclude_none=True,
)
async def get_subscription(
    principal: BillingManager, ctx: Ctx
) -> ApiResponse[SubscriptionOut]:
    with store_errors("SUBSCRIPTION_FETCH_ERROR", "Failed to fetch subscription"):
        subscription = await ctx.ledger.get_active_subscription(scoped_org_id(principal))
    if subscription is None:
        raise SubscriptionNotFoundError()
    return envelope.success(SubscriptionOut.model_validate(subscription))


@router.get(
    "/invoices",
    response_model=ApiResponse[list[InvoiceOut]],
    response_model_exclude_none=True,
)
async def list_invoices(
    principal: BillingManager,
    ctx: Ctx,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
) -> ApiResponse[list[InvoiceOut]]:
    """The organization's invoices, newest first, one page at a time."""
    with store_errors("INVOICES_FETCH_ERROR", "Failed to fetch invoices"):
        result = await ctx.ledger.list_invoices(
            scoped_org_id(principal), page=page, page_size=page_size
        )
    return envelope.paginated(
        [InvoiceOut.model_validate(i) for i in result.invoices],
        page=page,
        page_size=page_size,
        total_records=result.total,
    )
