from __future__ import annotations

from collections import Counter
from dataclasses import replace
from typing import Protocol

from org_service.models.plan import CompanySubscription, SubscriptionStatus


class SubscriptionRepo(Protocol):
    async def get_by_id(self, subscription_id: str) -> CompanySubscription | None: ...
    async def get_active_for_org(self, org_id: str) -> CompanySubscription | None: ...
    async def add(self, subscription: CompanySubscription) -> None: ...
    async def list_all(
        self, organization_id: str | None = None
    ) -> list[CompanySubscription]: ...
    async def count_active_by_plan(self) -> dict[str, int]: ...
    async def count_by_plan(self, plan_id: str) -> int: ...
    async def set_status(
        self, subscription_id: str, status: SubscriptionStatus
    ) -> CompanySubscription | None: ...
    async def adjust_seats(
        self, subscription_id: str, delta: int
    ) -> CompanySubscription | None: ...
    async def delete_by_org(self, org_id: str) -> int: ...


class InMemorySubscriptionRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, CompanySubscription] = {}

    async def get_by_id(self, subscription_id: str) -> CompanySubscription | None:
        return self._by_id.get(subscription_id)

    async def get_active_for_org(self, org_id: str) -> CompanySubscription | None:
        for s in self._by_id.values():
            if s.organization_id == org_id and s.is_active:
                return s
        return None

    async def add(self, subscription: CompanySubscription) -> None:
        # No await between the check and the insert: atomic on the event loop.
        if subscription.is_active and any(
            s.organization_id == subscription.organization_id and s.is_active
            for s in self._by_id.values()
        ):
            raise ValueError("organization already has an active subscription")
        self._by_id[subscription.id] = subscription

    async def list_all(
        self, organization_id: str | None = None
    ) -> list[CompanySubscription]:
        subs = [
            s
            for s in self._by_id.values()
            if organization_id is None or s.organization_id == organization_id
        ]
        return sorted(subs, key=lambda s: s.created_at, reverse=True)

    async def count_active_by_plan(self) -> dict[str, int]:
        return dict(Counter(s.plan_id for s in self._by_id.values() if s.is_active))

    async def count_by_plan(self, plan_id: str) -> int:
        return sum(1 for s in self._by_id.values() if s.plan_id == plan_id)

    async def set_status(
        self, subscription_id: str, status: SubscriptionStatus
    ) -> CompanySubscription | None:
        existing = self._by_id.get(subscription_id)
        if existing is None:
            return None
        if status is SubscriptionStatus.ACTIVE and not existing.is_active:
            other = await self.get_active_for_org(existing.organization_id)
            if other is not None:
                raise ValueError("organization already has an active subscription")
        updated = replace(existing, status=status)
        self._by_id[subscription_id] = updated
        return updated

    async def adjust_seats(
        self, subscription_id: str, delta: int
    ) -> CompanySubscription | None:
        existing = self._by_id.get(subscription_id)
        if existing is None:
            return None
        updated = replace(existing, active_seats=max(existing.active_seats + delta, 0))
        self._by_id[subscription_id] = updated
        return updated

    async def delete_by_org(self, org_id: str) -> int:
        ids = [sid for sid, s in self._by_id.items() if s.organization_id == org_id]
        for sid in ids:
            del self._by_id[sid]
        return len(ids)
