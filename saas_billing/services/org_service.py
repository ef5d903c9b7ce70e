"""Organization directory: organizations and memberships."""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from saas_billing.core.errors import (
    InvalidInputError,
    NotAMemberError,
    OrgNotFoundError,
    UserNotFoundError,
)
from saas_billing.models.organization import (
    ASSIGNABLE_ROLES,
    Membership,
    Organization,
    Role,
)
from saas_billing.repos.store import Store

logger = logging.getLogger(__name__)


class RoleResolver(Protocol):
    """The one capability the authorization gate needs from the directory."""

    async def resolve_role(self, user_id: UUID, org_id: UUID) -> Role: ...


class OrganizationDirectory:
    def __init__(self, store: Store) -> None:
        self._store = store

    async def create_organization(self, name: str, creator_id: UUID) -> Organization:
        """Create an org and make *creator_id* its owner, atomically."""
        name = name.strip()
        if not name:
            raise InvalidInputError("Organization name is required")

        org = Organization.new(name=name)
        async with self._store.unit_of_work() as uow:
            if await uow.users.get_by_id(creator_id) is None:
                raise UserNotFoundError()
            await uow.organizations.add(org)
            await uow.memberships.add(
                Membership.new(user_id=creator_id, org_id=org.id, role=Role.OWNER)
            )

        logger.info("Organization created  org_id=%s owner=%s", org.id, creator_id)
        return org

    async def list_user_organizations(self, user_id: UUID) -> list[Organization]:
        async with self._store.unit_of_work() as uow:
            memberships = await uow.memberships.list_by_user(user_id)
            return await uow.organizations.list_by_ids(m.org_id for m in memberships)

    async def add_member(
        self, org_id: UUID, user_id: UUID, role: Role | str
    ) -> Membership:
        """Add *user_id* to the org with *role* (admin or member).

        Whether the caller may do this is the gate's job, not ours.
        Raises OrgNotFoundError, UserNotFoundError, DuplicateMembershipError.
        """
        if role not in ASSIGNABLE_ROLES:
            raise InvalidInputError("role must be one of: admin, member")
        role = Role(role)

        membership = Membership.new(user_id=user_id, org_id=org_id, role=role)
        async with self._store.unit_of_work() as uow:
            if await uow.organizations.get_by_id(org_id) is None:
                raise OrgNotFoundError()
            if await uow.users.get_by_id(user_id) is None:
                raise UserNotFoundError()
            await uow.memberships.add(membership)

        logger.info(
            "Member added  org_id=%s user_id=%s role=%s", org_id, user_id, role.value
        )
        return membership

    async def resolve_role(self, user_id: UUID, org_id: UUID) -> Role:
        async with self._store.unit_of_work() as uow:
            membership = await uow.memberships.get(user_id, org_id)
        if membership is None:
            raise NotAMemberError()
        return membership.role
