"""PostgreSQL implementation of OrgMembershipRepo."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from org_service.db.tables import MemberRow
from org_service.models.organization import Membership


class PgOrgMembershipRepo:
    """Satisfies the OrgMembershipRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, org_id: str, user_id: str) -> Membership | None:
        stmt = select(MemberRow).where(
            MemberRow.organization_id == org_id, MemberRow.user_id == user_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_membership(row) if row is not None else None

    async def first_for_user(self, user_id: str) -> Membership | None:
        stmt = (
            select(MemberRow)
            .where(MemberRow.user_id == user_id)
            .order_by(MemberRow.created_at)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_membership(row) if row is not None else None

    async def add(self, membership: Membership) -> None:
        row = MemberRow(
            id=membership.id,
            organization_id=membership.organization_id,
            user_id=membership.user_id,
            role=membership.role,
            created_at=membership.created_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("membership already exists") from None

    async def remove(self, org_id: str, user_id: str) -> bool:
        stmt = delete(MemberRow).where(
            MemberRow.organization_id == org_id, MemberRow.user_id == user_id
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_by_org(self, org_id: str) -> list[Membership]:
        stmt = (
            select(MemberRow)
            .where(MemberRow.organization_id == org_id)
            .order_by(MemberRow.created_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_membership(r) for r in rows]

    async def delete_by_org(self, org_id: str) -> int:
        stmt = delete(MemberRow).where(MemberRow.organization_id == org_id)
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_membership(row: MemberRow) -> Membership:
    return Membership(
        id=row.id,
        organization_id=row.organization_id,
        user_id=row.user_id,
        role=row.role,
        created_at=row.created_at,
    )
