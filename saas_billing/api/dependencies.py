"""Authorization gate.

Two layers, both FastAPI dependencies:

  require_user             bearer token -> Principal(user_id)
  require_org_role(*roles) Principal + {org_id} path param -> Principal
                           enriched with the caller's role in that org

The org layer depends only on the ``RoleResolver`` protocol, so it never
reaches into the store itself.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from dataclasses import replace
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends
from fastapi.security import APIKeyHeader

from saas_billing.api.context import Ctx
from saas_billing.api.errors import store_errors
from saas_billing.core.errors import (
    AppError,
    ExpiredTokenError,
    ForbiddenError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    MalformedAuthError,
    MissingAuthError,
)
from saas_billing.core.logging import user_id_var
from saas_billing.models.organization import Role
from saas_billing.models.principal import Principal
from saas_billing.services.org_service import RoleResolver

logger = logging.getLogger(__name__)

# auto_error=False: a missing header reaches require_user as None so it
# can be told apart from a malformed one.
authorization_header = APIKeyHeader(
    name="Authorization",
    scheme_name="BearerToken",
    auto_error=False,
)


def parse_bearer(authorization: str | None) -> str:
    """Return the token from ``Bearer <token>``.

    Raises MissingAuthError or MalformedAuthError.
    """
    if not authorization:
        raise MissingAuthError()
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise MalformedAuthError()
    return parts[1]


async def require_user(
    ctx: Ctx,
    authorization: Annotated[str | None, Depends(authorization_header)],
) -> Principal:
    """Validate the bearer token and return the caller's Principal."""
    token = parse_bearer(authorization)
    try:
        user_id = ctx.credentials.validate_token(token)
    except ExpiredTokenError:
        logger.warning("Expired token rejected")
        raise InvalidOrExpiredTokenError() from None
    except InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e.details)
        raise InvalidOrExpiredTokenError() from None

    user_id_var.set(str(user_id))
    return Principal(user_id=user_id)


CurrentUser = Annotated[Principal, Depends(require_user)]


def scoped_org_id(principal: Principal) -> UUID:
    """org_id of a Principal that went through require_org_role.

    The guard always sets it before an endpoint body runs; this makes
    that contract explicit for the type checker.
    """
    if principal.org_id is None:
        raise AppError("Organization context not resolved")
    return principal.org_id


def require_org_role(
    *roles: Role,
) -> Callable[..., Coroutine[Any, Any, Principal]]:
    """Dependency factory: caller must hold one of *roles* in ``{org_id}``.

    Usage::

        _require_billing = require_org_role(Role.OWNER, Role.ADMIN)

        @router.get("/organizations/{org_id}/billing/plans")
        async def list_plans(principal: Annotated[Principal, Depends(_require_billing)]):
            ...

    NotAMemberError when the caller has no membership, ForbiddenError
    when their role is not in *roles*.
    """
    allowed = frozenset(roles)

    async def _guard(org_id: UUID, principal: CurrentUser, ctx: Ctx) -> Principal:
        resolver: RoleResolver = ctx.directory
        with store_errors("AUTHORIZATION_ERROR", "Failed to verify permissions"):
            role = await resolver.resolve_role(principal.user_id, org_id)

        scoped = replace(principal, org_id=org_id, org_role=role)
        if not scoped.has_any_org_role(allowed):
            logger.warning(
                "Access denied: user=%s org_role=%s required_any=%s org=%s",
                principal.user_id,
                role.value,
                sorted(r.value for r in allowed),
                org_id,
            )
            raise ForbiddenError()
        return scoped

    return _guard
