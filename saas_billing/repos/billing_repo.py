from __future__ import annotations

from typing import Protocol
from uuid import UUID

from saas_billing.core.errors import ActiveSubscriptionExistsError
from saas_billing.models.billing import (
    Invoice,
    Plan,
    Subscription,
    SubscriptionStatus,
)
from saas_billing.repos.in_memory import InMemoryTables


class PlanRepo(Protocol):
    async def get_by_id(self, plan_id: UUID) -> Plan | None: ...
    async def add(self, plan: Plan) -> None: ...
    async def list_by_price(self) -> list[Plan]: ...


class SubscriptionRepo(Protocol):
    async def get_active_for_org(self, org_id: UUID) -> Subscription | None: ...
    async def add(self, subscription: Subscription) -> None: ...


class InvoiceRepo(Protocol):
    async def add(self, invoice: Invoice) -> None: ...
    async def list_for_org(
        self, org_id: UUID, *, limit: int, offset: int
    ) -> list[Invoice]: ...
    async def count_for_org(self, org_id: UUID) -> int: ...


class InMemoryPlanRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._plans = tables.plans

    async def get_by_id(self, plan_id: UUID) -> Plan | None:
        return self._plans.get(plan_id)

    async def add(self, plan: Plan) -> None:
        self._plans[plan.id] = plan

    async def list_by_price(self) -> list[Plan]:
        return sorted(self._plans.values(), key=lambda p: (p.price_cents, p.created_at))


class InMemorySubscriptionRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._subs = tables.subscriptions

    async def get_active_for_org(self, org_id: UUID) -> Subscription | None:
        return next(
            (
                s
                for s in self._subs.values()
                if s.org_id == org_id and s.status == SubscriptionStatus.ACTIVE
            ),
            None,
        )

    async def add(self, subscription: Subscription) -> None:
        if (
            subscription.status == SubscriptionStatus.ACTIVE
            and await self.get_active_for_org(subscription.org_id) is not None
        ):
            raise ActiveSubscriptionExistsError()
        self._subs[subscription.id] = subscription


class InMemoryInvoiceRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._invoices = tables.invoices
        self._subs = tables.subscriptions

    async def add(self, invoice: Invoice) -> None:
        if invoice.subscription_id not in self._subs:
            raise ValueError("invoice references an unknown subscription")
        self._invoices[invoice.id] = invoice

    def _for_org(self, org_id: UUID) -> list[Invoice]:
        sub_ids = {s.id for s in self._subs.values() if s.org_id == org_id}
        return [i for i in self._invoices.values() if i.subscription_id in sub_ids]

    async def list_for_org(
        self, org_id: UUID, *, limit: int, offset: int
    ) -> list[Invoice]:
        newest_first = sorted(self._for_org(org_id), key=lambda i: i.created_at, reverse=True)
        return newest_first[offset : offset + limit]

    async def count_for_org(self, org_id: UUID) -> int:
        return len(self._for_org(org_id))
