from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol

from org_service.models.plan import Plan

UPDATABLE_FIELDS = frozenset({"name", "price_per_seat", "features"})


class PlanRepo(Protocol):
    async def get_by_id(self, plan_id: str) -> Plan | None: ...
    async def get_by_name(self, name: str) -> Plan | None: ...
    async def list_all(self) -> list[Plan]: ...
    async def add(self, plan: Plan) -> None: ...
    async def update(self, plan_id: str, changes: Mapping[str, Any]) -> Plan | None: ...
    async def delete(self, plan_id: str) -> bool: ...


class InMemoryPlanRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Plan] = {}

    async def get_by_id(self, plan_id: str) -> Plan | None:
        return self._by_id.get(plan_id)

    async def get_by_name(self, name: str) -> Plan | None:
        for p in self._by_id.values():
            if p.name == name:
                return p
        return None

    async def list_all(self) -> list[Plan]:
        return sorted(self._by_id.values(), key=lambda p: p.created_at)

    async def add(self, plan: Plan) -> None:
        if any(p.name == plan.name for p in self._by_id.values()):
            raise ValueError("plan name already exists")
        self._by_id[plan.id] = plan

    async def update(self, plan_id: str, changes: Mapping[str, Any]) -> Plan | None:
        existing = self._by_id.get(plan_id)
        if existing is None:
            return None
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise KeyError(f"not updatable: {sorted(unknown)}")

        new_name = changes.get("name", existing.name)
        if any(p.name == new_name and p.id != plan_id for p in self._by_id.values()):
            raise ValueError("plan name already exists")

        fields = dict(changes)
        if "features" in fields:
            fields["features"] = tuple(fields["features"])
        updated = replace(existing, **fields, updated_at=datetime.now(UTC))
        self._by_id[plan_id] = updated
        return updated

    async def delete(self, plan_id: str) -> bool:
        return self._by_id.pop(plan_id, None) is not None
