from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class Role(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


# Roles that can be granted through AddMember; ownership only comes from
# creating the organization.
ASSIGNABLE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MEMBER})


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    created_at: datetime

    @staticmethod
    def new(*, name: str) -> Organization:
        return Organization(id=uuid4(), name=name, created_at=datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class Membership:
    user_id: UUID
    org_id: UUID
    role: Role
    created_at: datetime

    @staticmethod
    def new(*, user_id: UUID, org_id: UUID, role: Role) -> Membership:
        return Membership(
            user_id=user_id,
            org_id=org_id,
            role=role,
            created_at=datetime.now(UTC),
        )
