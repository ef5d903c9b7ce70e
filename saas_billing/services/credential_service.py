"""Credential store: registration, login and token validation."""

from __future__ import annotations

import logging
import re
from uuid import UUID

from starlette.concurrency import run_in_threadpool

from saas_billing.core.errors import InvalidCredentialsError, InvalidInputError
from saas_billing.core.metrics import LOGIN_ATTEMPTS
from saas_billing.models.user import User
from saas_billing.repos.store import Store
from saas_billing.services import passwords
from saas_billing.services.token_service import TokenService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialService:
    def __init__(self, store: Store, tokens: TokenService) -> None:
        self._store = store
        self._tokens = tokens

    async def register(self, email: str, password: str) -> User:
        """Create a user. Raises InvalidInputError or DuplicateEmailError."""
        email = normalize_email(email)
        if not _EMAIL_RE.match(email):
            raise InvalidInputError("Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInputError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        password_hash = await run_in_threadpool(passwords.hash_password, password)
        user = User.new(email=email, password_hash=password_hash)
        async with self._store.unit_of_work() as uow:
            await uow.users.add(user)

        logger.info("User registered  user_id=%s", user.id)
        return user

    async def login(self, email: str, password: str) -> str:
        """Return a session token, or raise InvalidCredentialsError.

        Unknown email and wrong password are indistinguishable to the
        caller, in both the error and the time taken.

        Argon2 runs in the threadpool, outside any unit of work.
        """
        email = normalize_email(email)
        async with self._store.unit_of_work() as uow:
            user = await uow.users.get_by_email(email)

        if user is None:
            await run_in_threadpool(passwords.burn_verification, password)
            LOGIN_ATTEMPTS.labels(result="failure").inc()
            logger.warning("Login failed")
            raise InvalidCredentialsError()

        if not await run_in_threadpool(
            passwords.verify_password, password, user.password_hash
        ):
            LOGIN_ATTEMPTS.labels(result="failure").inc()
            logger.warning("Login failed  user_id=%s", user.id)
            raise InvalidCredentialsError()

        if passwords.needs_rehash(user.password_hash):
            new_hash = await run_in_threadpool(passwords.hash_password, password)
            async with self._store.unit_of_work() as uow:
                await uow.users.update_password_hash(user.id, new_hash)
            logger.info("Rehashed password for user=%s", user.id)

        LOGIN_ATTEMPTS.labels(result="success").inc()
        logger.info("Login succeeded  user_id=%s", user.id)
        return self._tokens.create_session_token(sub=str(user.id))

    def validate_token(self, token: str) -> UUID:
        """Raises InvalidTokenError or ExpiredTokenError."""
        return self._tokens.validate(token)
