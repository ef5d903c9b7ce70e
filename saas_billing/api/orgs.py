"""Organization endpoints.

Org-scoped routes resolve the caller's role from the ``{org_id}`` path
parameter at request time through the authorization gate.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict

from saas_billing.api import envelope
from saas_billing.api.context import Ctx
from saas_billing.api.dependencies import (
    CurrentUser,
    require_org_role,
    scoped_org_id,
)
from saas_billing.api.envelope import ApiResponse
from saas_billing.api.errors import store_errors
from saas_billing.api.ratelimit import require_rate_limit
from saas_billing.models.organization import Role
from saas_billing.models.principal import Principal

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/organizations",
    tags=["organizations"],
    dependencies=[Depends(require_rate_limit("api"))],
)

_require_owner_or_admin = require_org_role(Role.OWNER, Role.ADMIN)


# --- Pydantic schemas ---


class OrgCreateIn(BaseModel):
    name: str


class OrgOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime


class AddMemberIn(BaseModel):
    user_id: UUID
    role: Role


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    org_id: UUID
    role: Role
    created_at: datetime


class AddMemberOut(BaseModel):
    message: str
    member: MemberOut


# --- Endpoints ---


@router.post(
    "",
    response_model=ApiResponse[OrgOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_organization(
    payload: OrgCreateIn, principal: CurrentUser, ctx: Ctx
) -> ApiResponse[OrgOut]:
    """Create an organization owned by the caller."""
    with store_errors("ORGANIZATION_CREATE_ERROR", "Failed to create organization"):
        org = await ctx.directory.create_organization(payload.name, principal.user_id)
    return envelope.success(OrgOut.model_validate(org))


@router.get(
    "",
    response_model=ApiResponse[list[OrgOut]],
    response_model_exclude_none=True,
)
async def list_organizations(
    principal: CurrentUser, ctx: Ctx
) -> ApiResponse[list[OrgOut]]:
    """Organizations the caller belongs to, in any role."""
    with store_errors("ORGANIZATION_FETCH_ERROR", "Failed to fetch organizations"):
        orgs = await ctx.directory.list_user_organizations(principal.user_id)
    return envelope.success([OrgOut.model_validate(o) for o in orgs])


@router.post(
    "/{org_id}/members",
    response_model=ApiResponse[AddMemberOut],
    response_model_exclude_none=True,
)
async def add_member(
    payload: AddMemberIn,
    principal: Annotated[Principal, Depends(_require_owner_or_admin)],
    ctx: Ctx,
) -> ApiResponse[AddMemberOut]:
    """Add an existing user to the organization as admin or member."""
    with store_errors("MEMBER_ADD_ERROR", "Failed to add member"):
        membership = await ctx.directory.add_member(
            scoped_org_id(principal), payload.user_id, payload.role
        )
    return envelope.success(
        AddMemberOut(
            message="Member added successfully",
            member=MemberOut.model_validate(membership),
        )
    )
