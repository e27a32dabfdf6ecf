"""PostgreSQL implementation of OrgRepo."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from org_service.db.tables import OrganizationRow
from org_service.models.organization import Organization
from org_service.repos.org_repo import UPDATABLE_FIELDS


class PgOrgRepo:
    """Satisfies the OrgRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, org_id: str) -> Organization | None:
        row = await self._session.get(OrganizationRow, org_id)
        return _row_to_org(row) if row is not None else None

    async def get_by_slug(self, slug: str) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_org(row) if row is not None else None

    async def add(self, org: Organization) -> None:
        row = OrganizationRow(
            id=org.id,
            name=org.name,
            slug=org.slug,
            logo=org.logo,
            metadata_json=dict(org.metadata),
            created_at=org.created_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("slug already exists") from None

    async def list_all(self) -> list[Organization]:
        stmt = select(OrganizationRow).order_by(OrganizationRow.created_at.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_org(r) for r in rows]

    async def update(
        self, org_id: str, changes: Mapping[str, Any]
    ) -> Organization | None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise KeyError(f"not updatable: {sorted(unknown)}")
        row = await self._session.get(OrganizationRow, org_id)
        if row is None:
            return None
        try:
            async with self._session.begin_nested():
                for key, value in changes.items():
                    if key == "metadata":
                        row.metadata_json = dict(value)
                    else:
                        setattr(row, key, value)
        except IntegrityError:
            await self._session.refresh(row)
            raise ValueError("slug already exists") from None
        return _row_to_org(row)

    async def delete(self, org_id: str) -> bool:
        stmt = delete(OrganizationRow).where(OrganizationRow.id == org_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        logo=row.logo,
        metadata=dict(row.metadata_json or {}),
        created_at=row.created_at,
    )
