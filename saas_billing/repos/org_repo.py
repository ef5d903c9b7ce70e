from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from saas_billing.core.errors import DuplicateMembershipError
from saas_billing.models.organization import Membership, Organization
from saas_billing.repos.in_memory import InMemoryTables


class OrgRepo(Protocol):
    async def get_by_id(self, org_id: UUID) -> Organization | None: ...
    async def add(self, org: Organization) -> None: ...
    async def list_by_ids(self, org_ids: Iterable[UUID]) -> list[Organization]: ...


class MembershipRepo(Protocol):
    async def get(self, user_id: UUID, org_id: UUID) -> Membership | None: ...
    async def add(self, membership: Membership) -> None: ...
    async def list_by_user(self, user_id: UUID) -> list[Membership]: ...


class InMemoryOrgRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._orgs = tables.organizations

    async def get_by_id(self, org_id: UUID) -> Organization | None:
        return self._orgs.get(org_id)

    async def add(self, org: Organization) -> None:
        if org.id in self._orgs:
            raise ValueError("organization already exists")
        self._orgs[org.id] = org

    async def list_by_ids(self, org_ids: Iterable[UUID]) -> list[Organization]:
        found = [self._orgs[i] for i in set(org_ids) if i in self._orgs]
        return sorted(found, key=lambda o: o.created_at)


class InMemoryMembershipRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._store = tables.memberships

    async def get(self, user_id: UUID, org_id: UUID) -> Membership | None:
        return self._store.get((user_id, org_id))

    async def add(self, membership: Membership) -> None:
        key = (membership.user_id, membership.org_id)
        if key in self._store:
            raise DuplicateMembershipError()
        self._store[key] = membership

    async def list_by_user(self, user_id: UUID) -> list[Membership]:
        return [m for m in self._store.values() if m.user_id == user_id]
