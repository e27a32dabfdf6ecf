from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


def _now() -> datetime:
    return datetime.now(UTC)


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True, slots=True)
class Plan:
    id: str
    name: str
    price_per_seat: float
    features: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(*, name: str, price_per_seat: float, features: list[str]) -> Plan:
        return Plan(
            id=str(uuid4()),
            name=name,
            price_per_seat=price_per_seat,
            features=tuple(features),
        )


@dataclass(frozen=True, slots=True)
class CompanySubscription:
    id: str
    organization_id: str
    plan_id: str
    active_seats: int = 0
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime = field(default_factory=_now)

    @property
    def is_active(self) -> bool:
        return self.status is SubscriptionStatus.ACTIVE

    @staticmethod
    def new(
        *, organization_id: str, plan_id: str, active_seats: int = 0
    ) -> CompanySubscription:
        return CompanySubscription(
            id=str(uuid4()),
            organization_id=organization_id,
            plan_id=plan_id,
            active_seats=active_seats,
        )
