"""Unit-of-work store: the one seam between services and persistence.

Services never hold a repo for longer than one ``async with
store.unit_of_work() as uow:`` block.  Everything done through ``uow``
inside the block commits together when the block exits cleanly, and
none of it is visible if the block raises.  That is what makes
CreateOrganization (org + owner membership) and Subscribe
(subscription + first invoice) all-or-nothing.

Two backends satisfy the ``Store`` protocol:

  SqlStore      -- one SQLAlchemy session and transaction per unit of work
  InMemoryStore -- copy-on-write dicts, units of work serialized by a lock
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from saas_billing.repos.billing_repo import (
    InMemoryInvoiceRepo,
    InMemoryPlanRepo,
    InMemorySubscriptionRepo,
    InvoiceRepo,
    PlanRepo,
    SubscriptionRepo,
)
from saas_billing.repos.in_memory import InMemoryTables
from saas_billing.repos.org_repo import (
    InMemoryMembershipRepo,
    InMemoryOrgRepo,
    MembershipRepo,
    OrgRepo,
)
from saas_billing.repos.sql_billing_repo import (
    SqlInvoiceRepo,
    SqlPlanRepo,
    SqlSubscriptionRepo,
)
from saas_billing.repos.sql_org_repo import SqlMembershipRepo, SqlOrgRepo
from saas_billing.repos.sql_user_repo import SqlUserRepo
from saas_billing.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UnitOfWork:
    users: UserRepo
    organizations: OrgRepo
    memberships: MembershipRepo
    plans: PlanRepo
    subscriptions: SubscriptionRepo
    invoices: InvoiceRepo


class Store(Protocol):
    def unit_of_work(self) -> AbstractAsyncContextManager[UnitOfWork]: ...
    async def ping(self) -> None: ...


class InMemoryStore:
    """Store used when DATABASE_URL is not configured (dev, tests).

    Each unit of work runs against a fork of the tables and replaces the
    live tables only on clean exit.  The lock gives units of work the
    serializable isolation a database transaction would.
    """

    def __init__(self) -> None:
        self._tables = InMemoryTables()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        async with self._lock:
            working = self._tables.fork()
            yield UnitOfWork(
                users=InMemoryUserRepo(working),
                organizations=InMemoryOrgRepo(working),
                memberships=InMemoryMembershipRepo(working),
                plans=InMemoryPlanRepo(working),
                subscriptions=InMemorySubscriptionRepo(working),
                invoices=InMemoryInvoiceRepo(working),
            )
            self._tables = working

    async def ping(self) -> None:
        return None


class SqlStore:
    """Store backed by a SQLAlchemy async engine."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.engine = engine
        self._session_factory = session_factory

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[UnitOfWork]:
        # session.begin() commits on clean exit and rolls back on exception.
        async with self._session_factory() as session, session.begin():
            yield UnitOfWork(
                users=SqlUserRepo(session),
                organizations=SqlOrgRepo(session),
                memberships=SqlMembershipRepo(session),
                plans=SqlPlanRepo(session),
                subscriptions=SqlSubscriptionRepo(session),
                invoices=SqlInvoiceRepo(session),
            )

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
