"""Public auth endpoints (/api/v1/auth/register, /api/v1/auth/login)."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from saas_billing.api import envelope
from saas_billing.api.context import Ctx
from saas_billing.api.envelope import ApiResponse
from saas_billing.api.errors import store_errors
from saas_billing.api.ratelimit import require_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
    dependencies=[Depends(require_rate_limit("auth"))],
)


# --- Request / Response schemas -------------------------------------------


class RegisterIn(BaseModel):
    email: str
    password: str


class LoginIn(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    id: UUID
    email: str


class RegisterOut(BaseModel):
    message: str
    user: UserOut


class LoginOut(BaseModel):
    token: str


# --- POST /api/v1/auth/register -------------------------------------------


@router.post(
    "/register",
    response_model=ApiResponse[RegisterOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def register(payload: RegisterIn, ctx: Ctx) -> ApiResponse[RegisterOut]:
    with store_errors("REGISTRATION_ERROR", "Failed to register user"):
        user = await ctx.credentials.register(payload.email, payload.password)

    return envelope.success(
        RegisterOut(
            message="User registered successfully",
            user=UserOut(id=user.id, email=user.email),
        )
    )


# --- POST /api/v1/auth/login ----------------------------------------------


@router.post(
    "/login",
    response_model=ApiResponse[LoginOut],
    response_model_exclude_none=True,
)
async def login(payload: LoginIn, ctx: Ctx) -> ApiResponse[LoginOut]:
    with store_errors("LOGIN_ERROR", "Failed to log in"):
        token = await ctx.credentials.login(payload.email, payload.password)
    return envelope.success(LoginOut(token=token))
