"""SQL implementations of the ledger repos (plans, subscriptions, invoices)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from saas_billing.core.errors import ActiveSubscriptionExistsError
from saas_billing.db.tables import InvoiceRow, PlanRow, SubscriptionRow, as_utc
from saas_billing.models.billing import (
    BillingInterval,
    Invoice,
    InvoiceStatus,
    Plan,
    Subscription,
    SubscriptionStatus,
)


class SqlPlanRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, plan_id: UUID) -> Plan | None:
        row = await self._session.get(PlanRow, plan_id)
        if row is None:
            return None
        return _row_to_plan(row)

    async def add(self, plan: Plan) -> None:
        self._session.add(
            PlanRow(
                id=plan.id,
                name=plan.name,
                description=plan.description,
                price_cents=plan.price_cents,
                interval=plan.interval.value,
                created_at=plan.created_at,
            )
        )
        await self._session.flush()

    async def list_by_price(self) -> list[Plan]:
        stmt = select(PlanRow).order_by(PlanRow.price_cents.asc(), PlanRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_plan(r) for r in rows]


class SqlSubscriptionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active_for_org(self, org_id: UUID) -> Subscription | None:
        stmt = (
            select(SubscriptionRow)
            .where(
                SubscriptionRow.org_id == org_id,
                SubscriptionRow.status == SubscriptionStatus.ACTIVE.value,
            )
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_subscription(row)

    async def add(self, subscription: Subscription) -> None:
        self._session.add(
            SubscriptionRow(
                id=subscription.id,
                org_id=subscription.org_id,
                plan_id=subscription.plan_id,
                status=subscription.status.value,
                current_period_start=subscription.current_period_start,
                current_period_end=subscription.current_period_end,
                created_at=subscription.created_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            # uq_subscriptions_active_org: a concurrent subscribe won.
            raise ActiveSubscriptionExistsError() from None


class SqlInvoiceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, invoice: Invoice) -> None:
        self._session.add(
            InvoiceRow(
                id=invoice.id,
                subscription_id=invoice.subscription_id,
                amount_cents=invoice.amount_cents,
                status=invoice.status.value,
                due_date=invoice.due_date,
                paid_at=invoice.paid_at,
                created_at=invoice.created_at,
            )
        )
        await self._session.flush()

    async def list_for_org(
        self, org_id: UUID, *, limit: int, offset: int
    ) -> list[Invoice]:
        stmt = (
            select(InvoiceRow)
            .join(SubscriptionRow, SubscriptionRow.id == InvoiceRow.subscription_id)
            .where(SubscriptionRow.org_id == org_id)
            .order_by(InvoiceRow.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_invoice(r) for r in rows]

    async def count_for_org(self, org_id: UUID) -> int:
        stmt = (
            select(func.count(InvoiceRow.id))
            .join(SubscriptionRow, SubscriptionRow.id == InvoiceRow.subscription_id)
            .where(SubscriptionRow.org_id == org_id)
        )
        return (await self._session.execute(stmt)).scalar_one()


def _row_to_plan(row: PlanRow) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        description=row.description,
        price_cents=row.price_cents,
        interval=BillingInterval(row.interval),
        created_at=as_utc(row.created_at),
    )


def _row_to_subscription(row: SubscriptionRow) -> Subscription:
    return Subscription(
        id=row.id,
        org_id=row.org_id,
        plan_id=row.plan_id,
        status=SubscriptionStatus(row.status),
        current_period_start=as_utc(row.current_period_start),
        current_period_end=as_utc(row.current_period_end),
        created_at=as_utc(row.created_at),
    )


def _row_to_invoice(row: InvoiceRow) -> Invoice:
    return Invoice(
        id=row.id,
        subscription_id=row.subscription_id,
        amount_cents=row.amount_cents,
        status=InvoiceStatus(row.status),
        due_date=as_utc(row.due_date),
        paid_at=as_utc(row.paid_at) if row.paid_at is not None else None,
        created_at=as_utc(row.created_at),
    )
