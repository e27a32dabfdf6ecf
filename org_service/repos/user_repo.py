from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol

from org_service.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: str) -> User | None: ...
    async def get_by_email(self, email: str) -> User | None: ...
    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]: ...
    async def add(self, user: User) -> None: ...
    async def set_extension_enabled(
        self, user_id: str, enabled: bool
    ) -> User | None: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}
        self._by_email: dict[str, User] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email.strip().lower())

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        return {uid: self._by_id[uid] for uid in user_ids if uid in self._by_id}

    async def add(self, user: User) -> None:
        if user.id in self._by_id or user.email in self._by_email:
            raise ValueError("user already exists")
        self._by_id[user.id] = user
        self._by_email[user.email] = user

    async def set_extension_enabled(self, user_id: str, enabled: bool) -> User | None:
        u = self._by_id.get(user_id)
        if u is None:
            return None
        updated = replace(u, extension_enabled=enabled)
        self._by_id[user_id] = updated
        self._by_email[updated.email] = updated
        return updated
