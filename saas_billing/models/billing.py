from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class BillingInterval(StrEnum):
    MONTH = "month"
    YEAR = "year"

    def add_to(self, start: datetime) -> datetime:
        """Return *start* advanced by one billing interval.

        The day of month is kept where possible and clamped to the last
        day of the target month otherwise (Jan 31 -> Feb 28/29,
        Feb 29 -> Feb 28 of the next non-leap year).
        """
        months = 1 if self is BillingInterval.MONTH else 12
        month_index = start.month - 1 + months
        year = start.year + month_index // 12
        month = month_index % 12 + 1
        day = min(start.day, calendar.monthrange(year, month)[1])
        return start.replace(year=year, month=month, day=day)


class SubscriptionStatus(StrEnum):
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"


class InvoiceStatus(StrEnum):
    UNPAID = "unpaid"
    PAID = "paid"


@dataclass(frozen=True, slots=True)
class Plan:
    id: UUID
    name: str
    description: str
    price_cents: int
    interval: BillingInterval
    created_at: datetime

    @staticmethod
    def new(
        *,
        name: str,
        description: str,
        price_cents: int,
        interval: BillingInterval,
    ) -> Plan:
        if price_cents < 0:
            raise ValueError("price_cents must be non-negative")
        return Plan(
            id=uuid4(),
            name=name,
            description=description,
            price_cents=price_cents,
            interval=BillingInterval(interval),
            created_at=datetime.now(UTC),
        )


@dataclass(frozen=True, slots=True)
class Subscription:
    id: UUID
    org_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    created_at: datetime

    @staticmethod
    def start(*, org_id: UUID, plan: Plan, now: datetime) -> Subscription:
        """A new active subscription whose first period begins at *now*."""
        return Subscription(
            id=uuid4(),
            org_id=org_id,
            plan_id=plan.id,
            status=SubscriptionStatus.ACTIVE,
            current_period_start=now,
            current_period_end=plan.interval.add_to(now),
            created_at=now,
        )


@dataclass(frozen=True, slots=True)
class Invoice:
    id: UUID
    subscription_id: UUID
    amount_cents: int
    status: InvoiceStatus
    due_date: datetime
    created_at: datetime
    paid_at: datetime | None = None

    @staticmethod
    def first_for(subscription: Subscription, plan: Plan) -> Invoice:
        """The opening invoice: full plan price, unpaid, due immediately."""
        return Invoice(
            id=uuid4(),
            subscription_id=subscription.id,
            amount_cents=plan.price_cents,
            status=InvoiceStatus.UNPAID,
            due_date=subscription.current_period_start,
            created_at=subscription.created_at,
        )
