from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from saas_billing.core.errors import (
    ActiveSubscriptionExistsError,
    InvalidInputError,
    OrgNotFoundError,
    PlanNotFoundError,
)
from saas_billing.models.billing import (
    BillingInterval,
    InvoiceStatus,
    Plan,
    SubscriptionStatus,
)
from saas_billing.models.organization import Organization
from saas_billing.repos.billing_repo import InMemoryInvoiceRepo
from saas_billing.repos.store import InMemoryStore
from saas_billing.services.billing_service import PLANS_CACHE_KEY, SubscriptionLedger
from saas_billing.services.cache import InMemoryCacheService

NOW = datetime(2024, 1, 31, 9, 30, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def ledger(store: InMemoryStore, cache: InMemoryCacheService) -> SubscriptionLedger:
    return SubscriptionLedger(store, cache, clock=lambda: NOW)


def _org(store: InMemoryStore) -> UUID:
    org = Organization.new(name="Acme")

    async def add() -> None:
        async with store.unit_of_work() as uow:
            await uow.organizations.add(org)

    asyncio.run(add())
    return org.id


def _plan(
    ledger: SubscriptionLedger,
    name: str = "Pro",
    price_cents: int = 2900,
    interval: str = "month",
) -> Plan:
    return asyncio.run(
        ledger.create_plan(
            name=name, description="", price_cents=price_cents, interval=interval
        )
    )


# ---- plans ----


def test_list_plans_orders_by_price(ledger: SubscriptionLedger) -> None:
    pro = _plan(ledger, "Pro", 2900)
    free = _plan(ledger, "Free", 0)
    starter = _plan(ledger, "Starter", 900)
    plans = asyncio.run(ledger.list_plans())
    assert [p.id for p in plans] == [free.id, starter.id, pro.id]


def test_list_plans_empty_catalog(ledger: SubscriptionLedger) -> None:
    assert asyncio.run(ledger.list_plans()) == []


def test_list_plans_is_served_from_cache(
    ledger: SubscriptionLedger, store: InMemoryStore, cache: InMemoryCacheService
) -> None:
    first = asyncio.run(ledger.list_plans())
    assert asyncio.run(cache.get(PLANS_CACHE_KEY)) is not None

    # Written behind the ledger's back: invisible until the entry goes.
    async def sneak_in() -> None:
        async with store.unit_of_work() as uow:
            await uow.plans.add(
                Plan.new(name="Hidden", description="", price_cents=1, interval="month")
            )

    asyncio.run(sneak_in())
    assert asyncio.run(ledger.list_plans()) == first

    asyncio.run(cache.delete(PLANS_CACHE_KEY))
    assert [p.name for p in asyncio.run(ledger.list_plans())] == ["Hidden"]


def test_cached_plans_round_trip(ledger: SubscriptionLedger) -> None:
    _plan(ledger, "Pro", 2900, "month")
    _plan(ledger, "Pro Annual", 29000, "year")
    fresh = asyncio.run(ledger.list_plans())
    cached = asyncio.run(ledger.list_plans())
    assert cached == fresh
    assert cached[1].interval is BillingInterval.YEAR


def test_create_plan_invalidates_catalog(
    ledger: SubscriptionLedger, cache: InMemoryCacheService
) -> None:
    _plan(ledger, "Starter", 900)
    assert len(asyncio.run(ledger.list_plans())) == 1

    _plan(ledger, "Pro", 2900)
    assert asyncio.run(cache.get(PLANS_CACHE_KEY)) is None
    assert len(asyncio.run(ledger.list_plans())) == 2


def test_create_plan_invalidates_every_plan_entry(
    ledger: SubscriptionLedger, cache: InMemoryCacheService
) -> None:
    asyncio.run(cache.set("plans:catalog", "[]", 60))
    asyncio.run(cache.set("plans:by-interval:year", "[]", 60))
    asyncio.run(cache.set("orgs:unrelated", "x", 60))

    _plan(ledger)

    assert asyncio.run(cache.get("plans:catalog")) is None
    assert asyncio.run(cache.get("plans:by-interval:year")) is None
    assert asyncio.run(cache.get("orgs:unrelated")) == "x"


def test_unreadable_cache_entry_is_discarded(
    ledger: SubscriptionLedger, cache: InMemoryCacheService
) -> None:
    pro = _plan(ledger)
    asyncio.run(cache.set(PLANS_CACHE_KEY, '[{"id": "not-a-plan"}]', 60))

    assert [p.id for p in asyncio.run(ledger.list_plans())] == [pro.id]
    # Repopulated from the store.
    assert pro.name in asyncio.run(cache.get(PLANS_CACHE_KEY))


@pytest.mark.parametrize(
    "kwargs,match",
    [
        ({"name": "  "}, "name"),
        ({"price_cents": -1}, "non-negative"),
        ({"interval": "week"}, "interval"),
    ],
)
def test_create_plan_validation(ledger: SubscriptionLedger, kwargs: dict, match: str) -> None:
    fields = {"name": "Pro", "description": "", "price_cents": 2900, "interval": "month"}
    fields.update(kwargs)
    with pytest.raises(InvalidInputError, match=match):
        asyncio.run(ledger.create_plan(**fields))


def test_free_plan_is_allowed(ledger: SubscriptionLedger) -> None:
    assert _plan(ledger, "Free", 0).price_cents == 0


# ---- subscribe ----


def test_subscribe_starts_period_and_bills_it(
    ledger: SubscriptionLedger, store: InMemoryStore
) -> None:
    org_id = _org(store)
    plan = _plan(ledger)

    sub = asyncio.run(ledger.subscribe(org_id, plan.id))
    assert sub.status is SubscriptionStatus.ACTIVE
    assert sub.plan_id == plan.id
    assert sub.current_period_start == NOW
    assert sub.current_period_end == datetime(2024, 2, 29, 9, 30, tzinfo=UTC)

    page = asyncio.run(ledger.list_invoices(org_id))
    assert page.total == 1
    (invoice,) = page.invoices
    assert invoice.subscription_id == sub.id
    assert invoice.amount_cents == plan.price_cents
    assert invoice.status is InvoiceStatus.UNPAID
    assert invoice.due_date == NOW
    assert invoice.paid_at is None


def test_subscribe_yearly_plan(ledger: SubscriptionLedger, store: InMemoryStore) -> None:
    org_id = _org(store)
    plan = _plan(ledger, "Pro Annual", 29000, "year")
    sub = asyncio.run(ledger.subscribe(org_id, plan.id))
    assert sub.current_period_end == datetime(2025, 1, 31, 9, 30, tzinfo=UTC)


def test_active_subscription_lookup(ledger: SubscriptionLedger, store: InMemoryStore) -> None:
    org_id = _org(store)
    assert asyncio.run(ledger.get_active_subscription(org_id)) is None
    sub = asyncio.run(ledger.subscribe(org_id, _plan(ledger).id))
    assert asyncio.run(ledger.get_active_subscription(org_id)) == sub


def test_second_subscription_conflicts(
    ledger: SubscriptionLedger, store: InMemoryStore
) -> None:
    org_id = _org(store)
    asyncio.run(ledger.subscribe(org_id, _plan(ledger).id))
    with pytest.raises(ActiveSubscriptionExistsError):
        asyncio.run(ledger.subscribe(org_id, _plan(ledger, "Other").id))
    assert asyncio.run(ledger.list_invoices(org_id)).total == 1


def test_subscribe_unknown_plan(ledger: SubscriptionLedger, store: InMemoryStore) -> None:
    with pytest.raises(PlanNotFoundError):
        asyncio.run(ledger.subscribe(_org(store), uuid4()))


def test_subscribe_unknown_org(ledger: SubscriptionLedger) -> None:
    with pytest.raises(OrgNotFoundError):
        asyncio.run(ledger.subscribe(uuid4(), _plan(ledger).id))


def test_subscribe_is_all_or_nothing(
    ledger: SubscriptionLedger, store: InMemoryStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    org_id = _org(store)
    plan = _plan(ledger)

    async def broken_add(self, invoice) -> None:
        raise RuntimeError("disk full")

    monkeypatch.setattr(InMemoryInvoiceRepo, "add", broken_add)
    with pytest.raises(RuntimeError, match="disk full"):
        asyncio.run(ledger.subscribe(org_id, plan.id))

    monkeypatch.undo()
    assert asyncio.run(ledger.get_active_subscription(org_id)) is None
    assert asyncio.run(ledger.list_invoices(org_id)).total == 0
    # A retry succeeds because nothing was left behind.
    asyncio.run(ledger.subscribe(org_id, plan.id))


def test_subscriptions_are_per_org(ledger: SubscriptionLedger, store: InMemoryStore) -> None:
    plan = _plan(ledger)
    a, b = _org(store), _org(store)
    asyncio.run(ledger.subscribe(a, plan.id))
    asyncio.run(ledger.subscribe(b, plan.id))
    assert asyncio.run(ledger.list_invoices(a)).total == 1
    assert asyncio.run(ledger.list_invoices(b)).total == 1


# ---- invoices ----


def test_list_invoices_for_org_without_subscription(
    ledger: SubscriptionLedger, store: InMemoryStore
) -> None:
    page = asyncio.run(ledger.list_invoices(_org(store)))
    assert page.invoices == []
    assert page.total == 0


def test_list_invoices_page_past_the_end(
    ledger: SubscriptionLedger, store: InMemoryStore
) -> None:
    org_id = _org(store)
    asyncio.run(ledger.subscribe(org_id, _plan(ledger).id))
    page = asyncio.run(ledger.list_invoices(org_id, page=5, page_size=10))
    assert page.invoices == []
    assert page.total == 1


@pytest.mark.parametrize("page,page_size", [(0, 20), (1, 0), (-1, 5)])
def test_list_invoices_rejects_bad_paging(
    ledger: SubscriptionLedger, store: InMemoryStore, page: int, page_size: int
) -> None:
    with pytest.raises(InvalidInputError):
        asyncio.run(ledger.list_invoices(_org(store), page=page, page_size=page_size))
