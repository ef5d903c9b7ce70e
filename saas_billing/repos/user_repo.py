from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from saas_billing.core.errors import DuplicateEmailError
from saas_billing.models.user import User
from saas_billing.repos.in_memory import InMemoryTables


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def add(self, user: User) -> None: ...
    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None: ...


class InMemoryUserRepo:
    def __init__(self, tables: InMemoryTables) -> None:
        self._users = tables.users

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return next((u for u in self._users.values() if u.email == email), None)

    async def add(self, user: User) -> None:
        if await self.get_by_email(user.email) is not None:
            raise DuplicateEmailError()
        self._users[user.id] = user

    async def update_password_hash(self, user_id: UUID, password_hash: str) -> None:
        u = self._users.get(user_id)
        if u is None:
            raise KeyError("user not found")
        self._users[user_id] = replace(u, password_hash=password_hash)
