"""SQL implementations of OrgRepo and MembershipRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from saas_billing.core.errors import DuplicateMembershipError
from saas_billing.db.tables import MembershipRow, OrganizationRow, as_utc
from saas_billing.models.organization import Membership, Organization, Role


class SqlOrgRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, org_id: UUID) -> Organization | None:
        row = await self._session.get(OrganizationRow, org_id)
        if row is None:
            return None
        return _row_to_org(row)

    async def add(self, org: Organization) -> None:
        self._session.add(
            OrganizationRow(id=org.id, name=org.name, created_at=org.created_at)
        )
        await self._session.flush()

    async def list_by_ids(self, org_ids: Iterable[UUID]) -> list[Organization]:
        ids = list(set(org_ids))
        if not ids:
            return []
        stmt = (
            select(OrganizationRow)
            .where(OrganizationRow.id.in_(ids))
            .order_by(OrganizationRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_org(r) for r in rows]


class SqlMembershipRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, org_id: UUID) -> Membership | None:
        row = await self._session.get(MembershipRow, (user_id, org_id))
        if row is None:
            return None
        return _row_to_membership(row)

    async def add(self, membership: Membership) -> None:
        self._session.add(
            MembershipRow(
                user_id=membership.user_id,
                org_id=membership.org_id,
                role=membership.role.value,
                created_at=membership.created_at,
            )
        )
        try:
            await self._session.flush()
        except IntegrityError:
            # Callers check that the user and org exist first, so the only
            # constraint left to trip is the (user_id, org_id) primary key.
            raise DuplicateMembershipError() from None

    async def list_by_user(self, user_id: UUID) -> list[Membership]:
        stmt = select(MembershipRow).where(MembershipRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_membership(r) for r in rows]


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(id=row.id, name=row.name, created_at=as_utc(row.created_at))


def _row_to_membership(row: MembershipRow) -> Membership:
    return Membership(
        user_id=row.user_id,
        org_id=row.org_id,
        role=Role(row.role),
        created_at=as_utc(row.created_at),
    )
