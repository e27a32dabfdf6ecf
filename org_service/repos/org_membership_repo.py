from __future__ import annotations

from typing import Protocol

from org_service.models.organization import Membership


class OrgMembershipRepo(Protocol):
    async def get(self, org_id: str, user_id: str) -> Membership | None: ...
    async def first_for_user(self, user_id: str) -> Membership | None: ...
    async def add(self, membership: Membership) -> None: ...
    async def remove(self, org_id: str, user_id: str) -> bool: ...
    async def list_by_org(self, org_id: str) -> list[Membership]: ...
    async def delete_by_org(self, org_id: str) -> int: ...


class InMemoryOrgMembershipRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], Membership] = {}

    async def get(self, org_id: str, user_id: str) -> Membership | None:
        return self._store.get((org_id, user_id))

    async def first_for_user(self, user_id: str) -> Membership | None:
        # insertion order stands in for created_at
        for m in self._store.values():
            if m.user_id == user_id:
                return m
        return None

    async def add(self, membership: Membership) -> None:
        key = (membership.organization_id, membership.user_id)
        if key in self._store:
            raise ValueError("membership already exists")
        self._store[key] = membership

    async def remove(self, org_id: str, user_id: str) -> bool:
        return self._store.pop((org_id, user_id), None) is not None

    async def list_by_org(self, org_id: str) -> list[Membership]:
        return [m for m in self._store.values() if m.organization_id == org_id]

    async def delete_by_org(self, org_id: str) -> int:
        keys = [k for k in self._store if k[0] == org_id]
        for k in keys:
            del self._store[k]
        return len(keys)
