from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Protocol

from org_service.models.organization import Organization

# Fields a partial update may touch.
UPDATABLE_FIELDS = frozenset({"name", "slug", "logo", "metadata"})


class OrgRepo(Protocol):
    async def get_by_id(self, org_id: str) -> Organization | None: ...
    async def get_by_slug(self, slug: str) -> Organization | None: ...
    async def add(self, org: Organization) -> None: ...
    async def list_all(self) -> list[Organization]: ...
    async def update(
        self, org_id: str, changes: Mapping[str, Any]
    ) -> Organization | None: ...
    async def delete(self, org_id: str) -> bool: ...


class InMemoryOrgRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Organization] = {}
        self._by_slug: dict[str, Organization] = {}

    async def get_by_id(self, org_id: str) -> Organization | None:
        return self._by_id.get(org_id)

    async def get_by_slug(self, slug: str) -> Organization | None:
        return self._by_slug.get(slug)

    async def add(self, org: Organization) -> None:
        if org.slug in self._by_slug:
            raise ValueError("slug already exists")
        self._by_id[org.id] = org
        self._by_slug[org.slug] = org

    async def list_all(self) -> list[Organization]:
        """Newest first; ties keep the most recently added first."""
        orgs = list(reversed(self._by_id.values()))
        return sorted(orgs, key=lambda o: o.created_at, reverse=True)

    async def update(
        self, org_id: str, changes: Mapping[str, Any]
    ) -> Organization | None:
        existing = self._by_id.get(org_id)
        if existing is None:
            return None
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise KeyError(f"not updatable: {sorted(unknown)}")

        new_slug = changes.get("slug", existing.slug)
        holder = self._by_slug.get(new_slug)
        if holder is not None and holder.id != org_id:
            raise ValueError("slug already exists")

        updated = replace(existing, **changes)
        del self._by_slug[existing.slug]
        self._by_id[org_id] = updated
        self._by_slug[updated.slug] = updated
        return updated

    async def delete(self, org_id: str) -> bool:
        org = self._by_id.pop(org_id, None)
        if org is None:
            return False
        self._by_slug.pop(org.slug, None)
        return True
