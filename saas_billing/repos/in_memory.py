"""Backing dicts for the in-memory store.

All in-memory repos are views over one ``InMemoryTables`` instance so
that cross-entity lookups (an org's invoices, a user's organizations)
work the way a join does in SQL.  ``fork`` makes the copy a unit of work
mutates; the store swaps it in on commit and drops it on rollback.
Domain objects are frozen dataclasses, so shallow dict copies are enough.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from uuid import UUID

from saas_billing.models.billing import Invoice, Plan, Subscription
from saas_billing.models.organization import Membership, Organization
from saas_billing.models.user import User


@dataclass
class InMemoryTables:
    users: dict[UUID, User] = field(default_factory=dict)
    organizations: dict[UUID, Organization] = field(default_factory=dict)
    memberships: dict[tuple[UUID, UUID], Membership] = field(default_factory=dict)
    plans: dict[UUID, Plan] = field(default_factory=dict)
    subscriptions: dict[UUID, Subscription] = field(default_factory=dict)
    invoices: dict[UUID, Invoice] = field(default_factory=dict)

    def fork(self) -> InMemoryTables:
        return InMemoryTables(**{f.name: dict(getattr(self, f.name)) for f in fields(self)})
