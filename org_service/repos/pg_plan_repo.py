"""PostgreSQL implementation of PlanRepo."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from org_service.db.tables import PlanRow
from org_service.models.plan import Plan
from org_service.repos.plan_repo import UPDATABLE_FIELDS


class PgPlanRepo:
    """Satisfies the PlanRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, plan_id: str) -> Plan | None:
        row = await self._session.get(PlanRow, plan_id)
        return _row_to_plan(row) if row is not None else None

    async def get_by_name(self, name: str) -> Plan | None:
        stmt = select(PlanRow).where(PlanRow.name == name)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_plan(row) if row is not None else None

    async def list_all(self) -> list[Plan]:
        stmt = select(PlanRow).order_by(PlanRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_plan(r) for r in rows]

    async def add(self, plan: Plan) -> None:
        row = PlanRow(
            id=plan.id,
            name=plan.name,
            price_per_seat=plan.price_per_seat,
            features=list(plan.features),
            created_at=plan.created_at,
            updated_at=plan.updated_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("plan name already exists") from None

    async def update(self, plan_id: str, changes: Mapping[str, Any]) -> Plan | None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise KeyError(f"not updatable: {sorted(unknown)}")
        row = await self._session.get(PlanRow, plan_id)
        if row is None:
            return None
        try:
            async with self._session.begin_nested():
                for key, value in changes.items():
                    setattr(row, key, list(value) if key == "features" else value)
                row.updated_at = datetime.now(UTC)
        except IntegrityError:
            await self._session.refresh(row)
            raise ValueError("plan name already exists") from None
        return _row_to_plan(row)

    async def delete(self, plan_id: str) -> bool:
        result = await self._session.execute(delete(PlanRow).where(PlanRow.id == plan_id))
        return result.rowcount > 0


def _row_to_plan(row: PlanRow) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        price_per_seat=row.price_per_seat,
        features=tuple(row.features or ()),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
