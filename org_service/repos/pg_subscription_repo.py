"""PostgreSQL implementation of SubscriptionRepo.

The single-ACTIVE-subscription rule is the partial unique index
``uq_company_subscriptions_one_active``; a losing concurrent insert
surfaces here as IntegrityError and is re-raised as ValueError.
"""

from __future__ import annotations

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from org_service.db.tables import CompanySubscriptionRow
from org_service.models.plan import CompanySubscription, SubscriptionStatus

_ACTIVE = SubscriptionStatus.ACTIVE.value


class PgSubscriptionRepo:
    """Satisfies the SubscriptionRepo Protocol using SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, subscription_id: str) -> CompanySubscription | None:
        row = await self._session.get(CompanySubscriptionRow, subscription_id)
        return _row_to_subscription(row) if row is not None else None

    async def get_active_for_org(self, org_id: str) -> CompanySubscription | None:
        stmt = select(CompanySubscriptionRow).where(
            CompanySubscriptionRow.organization_id == org_id,
            CompanySubscriptionRow.status == _ACTIVE,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_subscription(row) if row is not None else None

    async def add(self, subscription: CompanySubscription) -> None:
        row = CompanySubscriptionRow(
            id=subscription.id,
            organization_id=subscription.organization_id,
            plan_id=subscription.plan_id,
            active_seats=subscription.active_seats,
            status=subscription.status.value,
            created_at=subscription.created_at,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError:
            raise ValueError("organization already has an active subscription") from None

    async def list_all(
        self, organization_id: str | None = None
    ) -> list[CompanySubscription]:
        stmt = select(CompanySubscriptionRow).order_by(
            CompanySubscriptionRow.created_at.desc()
        )
        if organization_id is not None:
            stmt = stmt.where(CompanySubscriptionRow.organization_id == organization_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_subscription(r) for r in rows]

    async def count_active_by_plan(self) -> dict[str, int]:
        stmt = (
            select(CompanySubscriptionRow.plan_id, func.count())
            .where(CompanySubscriptionRow.status == _ACTIVE)
            .group_by(CompanySubscriptionRow.plan_id)
        )
        return {plan_id: int(n) for plan_id, n in await self._session.execute(stmt)}

    async def count_by_plan(self, plan_id: str) -> int:
        stmt = select(func.count()).select_from(CompanySubscriptionRow).where(
            CompanySubscriptionRow.plan_id == plan_id
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def set_status(
        self, subscription_id: str, status: SubscriptionStatus
    ) -> CompanySubscription | None:
        row = await self._session.get(CompanySubscriptionRow, subscription_id)
        if row is None:
            return None
        try:
            async with self._session.begin_nested():
                row.status = status.value
        except IntegrityError:
            await self._session.refresh(row)
            raise ValueError("organization already has an active subscription") from None
        return _row_to_subscription(row)

    async def adjust_seats(
        self, subscription_id: str, delta: int
    ) -> CompanySubscription | None:
        seats = CompanySubscriptionRow.active_seats + delta
        stmt = (
            update(CompanySubscriptionRow)
            .where(CompanySubscriptionRow.id == subscription_id)
            .values(active_seats=case((seats < 0, 0), else_=seats))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        row = await self._session.get(
            CompanySubscriptionRow, subscription_id, populate_existing=True
        )
        return _row_to_subscription(row) if row is not None else None

    async def delete_by_org(self, org_id: str) -> int:
        stmt = delete(CompanySubscriptionRow).where(
            CompanySubscriptionRow.organization_id == org_id
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_subscription(row: CompanySubscriptionRow) -> CompanySubscription:
    return CompanySubscription(
        id=row.id,
        organization_id=row.organization_id,
        plan_id=row.plan_id,
        active_seats=row.active_seats,
        status=SubscriptionStatus(row.status),
        created_at=row.created_at,
    )
