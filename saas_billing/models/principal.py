from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from saas_billing.models.organization import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated session token.

    Carried through the request via FastAPI's dependency system.

    user_id: subject claim of the token (always set)
    org_id, org_role: set by the org-scoped guard once the caller's
        membership in the path's organization has been resolved
    """

    user_id: UUID
    org_id: UUID | None = None
    org_role: Role | None = None

    def has_any_org_role(self, roles: frozenset[Role]) -> bool:
        return self.org_role in roles
