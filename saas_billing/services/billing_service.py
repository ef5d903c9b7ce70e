"""Subscription ledger: plans, subscriptions and invoices."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from saas_billing.core.errors import (
    ActiveSubscriptionExistsError,
    InvalidInputError,
    OrgNotFoundError,
    PlanNotFoundError,
)
from saas_billing.core.metrics import (
    CACHE_OPERATIONS,
    INVOICED_CENTS,
    SUBSCRIPTIONS_CREATED,
)
from saas_billing.models.billing import BillingInterval, Invoice, Plan, Subscription
from saas_billing.repos.store import Store
from saas_billing.services.cache import CacheService

logger = logging.getLogger(__name__)

PLANS_CACHE_KEY = "plans:catalog"
PLANS_CACHE_PATTERN = "plans:*"
_PLAN_LIST = TypeAdapter(list[Plan])


@dataclass(frozen=True, slots=True)
class InvoicePage:
    invoices: list[Invoice]
    total: int


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SubscriptionLedger:
    def __init__(
        self,
        store: Store,
        cache: CacheService,
        *,
        plans_cache_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._cache = cache
        self._plans_ttl = plans_cache_ttl_seconds
        self._clock = clock

    # --- Plans ---

    async def list_plans(self) -> list[Plan]:
        """Catalog ordered by price, cheapest first (read-through cached)."""
        cached = await self._cache.get(PLANS_CACHE_KEY)
        if cached is not None:
            try:
                plans = _PLAN_LIST.validate_json(cached)
            except ValidationError:
                logger.warning("Discarding unreadable plan catalog cache entry")
                await self._cache.delete(PLANS_CACHE_KEY)
            else:
                CACHE_OPERATIONS.labels(operation="hit").inc()
                return plans

        CACHE_OPERATIONS.labels(operation="miss").inc()
        async with self._store.unit_of_work() as uow:
            plans = await uow.plans.list_by_price()

        await self._cache.set(
            PLANS_CACHE_KEY, _PLAN_LIST.dump_json(plans).decode(), self._plans_ttl
        )
        return plans

    async def create_plan(
        self,
        *,
        name: str,
        description: str,
        price_cents: int,
        interval: BillingInterval | str,
    ) -> Plan:
        """Administrative: add a plan to the catalog."""
        name = name.strip()
        if not name:
            raise InvalidInputError("Plan name is required")
        if price_cents < 0:
            raise InvalidInputError("price_cents must be non-negative")
        try:
            interval = BillingInterval(interval)
        except ValueError:
            raise InvalidInputError("interval must be one of: month, year") from None

        plan = Plan.new(
            name=name,
            description=description,
            price_cents=price_cents,
            interval=interval,
        )
        async with self._store.unit_of_work() as uow:
            await uow.plans.add(plan)

        await self._cache.delete_pattern(PLANS_CACHE_PATTERN)
        logger.info(
            "Plan created  plan_id=%s price_cents=%d interval=%s",
            plan.id,
            plan.price_cents,
            plan.interval.value,
        )
        return plan

    # --- Subscriptions ---

    async def subscribe(self, org_id: UUID, plan_id: UUID) -> Subscription:
        """Start an active subscription and bill its first period.

        Subscription and invoice are written in one unit of work: if
        anything fails neither exists.  The invoice amount is the plan
        price read inside that same unit of work.
        """
        now = self._clock()
        async with self._store.unit_of_work() as uow:
            if await uow.organizations.get_by_id(org_id) is None:
                raise OrgNotFoundError()
            plan = await uow.plans.get_by_id(plan_id)
            if plan is None:
                raise PlanNotFoundError()
            if await uow.subscriptions.get_active_for_org(org_id) is not None:
                raise ActiveSubscriptionExistsError()

            subscription = Subscription.start(org_id=org_id, plan=plan, now=now)
            invoice = Invoice.first_for(subscription, plan)
            await uow.subscriptions.add(subscription)
            await uow.invoices.add(invoice)

        SUBSCRIPTIONS_CREATED.labels(interval=plan.interval.value).inc()
        INVOICED_CENTS.inc(invoice.amount_cents)
        logger.info(
            "Subscription created  org_id=%s plan_id=%s subscription_id=%s "
            "invoice_id=%s amount_cents=%d",
            org_id,
            plan_id,
            subscription.id,
            invoice.id,
            invoice.amount_cents,
        )
        return subscription

    async def get_active_subscription(self, org_id: UUID) -> Subscription | None:
        async with self._store.unit_of_work() as uow:
            return await uow.subscriptions.get_active_for_org(org_id)

    # --- Invoices ---

    async def list_invoices(
        self, org_id: UUID, *, page: int = 1, page_size: int = 20
    ) -> InvoicePage:
        """One page of the org's invoices, newest first."""
        if page < 1 or page_size < 1:
            raise InvalidInputError("page and page_size must be positive")
        async with self._store.unit_of_work() as uow:
            total = await uow.invoices.count_for_org(org_id)
            invoices = await uow.invoices.list_for_org(
                org_id, limit=page_size, offset=(page - 1) * page_size
            )
        return InvoicePage(invoices=invoices, total=total)
