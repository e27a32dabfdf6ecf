"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from org_service.db.tables import UserRow
from org_service.models.user import GlobalRole, User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: str) -> User | None:
        row = await self._session.get(UserRow, user_id)
        return _row_to_user(row) if row is not None else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(UserRow.email == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        stmt = select(UserRow).where(UserRow.id.in_(ids))
        rows = (await self._session.execute(stmt)).scalars().all()
        return {row.id: _row_to_user(row) for row in rows}

    async def add(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            name=user.name,
            email_verified=user.email_verified,
            extension_enabled=user.extension_enabled,
            role=user.global_role.value,
            created_at=user.created_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("user already exists") from None

    async def set_extension_enabled(self, user_id: str, enabled: bool) -> User | None:
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(extension_enabled=enabled)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        row = await self._session.get(UserRow, user_id, populate_existing=True)
        return _row_to_user(row) if row is not None else None


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name or "",
        email_verified=row.email_verified,
        extension_enabled=row.extension_enabled,
        global_role=GlobalRole(row.role),
        created_at=row.created_at,
    )
