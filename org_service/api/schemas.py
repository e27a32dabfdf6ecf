"""Request and response bodies.

JSON keys are camelCase on the wire (``pricePerSeat``, ``activeSeats``);
the Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from org_service.models.organization import MemberWithUser, Membership, Organization
from org_service.models.plan import Plan
from org_service.models.user import User
from org_service.services.organizations_service import OrganizationDetail
from org_service.services.plans_service import PlanWithSubscribers, SubscriptionDetail


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- users / members ---


class UserSummaryOut(CamelModel):
    id: str
    name: str
    email: str
    global_role: str
    extension_enabled: bool


class MeOut(CamelModel):
    id: str
    email: str
    name: str
    email_verified: bool


class MemberOut(CamelModel):
    id: str
    organization_id: str
    user_id: str
    role: str
    created_at: datetime
    user: UserSummaryOut | None = None


def user_summary(user: User | None) -> UserSummaryOut | None:
    if user is None:
        return None
    return UserSummaryOut(
        id=user.id,
        name=user.name,
        email=user.email,
        global_role=user.global_role.value,
        extension_enabled=user.extension_enabled,
    )


def member_out(m: Membership, user: User | None = None) -> MemberOut:
    return MemberOut(
        id=m.id,
        organization_id=m.organization_id,
        user_id=m.user_id,
        role=m.role,
        created_at=m.created_at,
        user=user_summary(user),
    )


def member_with_user_out(mw: MemberWithUser) -> MemberOut:
    return member_out(mw.membership, mw.user)


# --- organizations ---


class OrgCreateIn(CamelModel):
    # Any: a non-string name is a 400 from the service, not a 422
    name: Any = None


class OrgUpdateIn(CamelModel):
    name: Any = None
    slug: Any = None
    logo: Any = None
    metadata: Any = None


class OrgOut(CamelModel):
    id: str
    name: str
    slug: str
    logo: str | None
    metadata: dict[str, Any]
    created_at: datetime


class OrgDetailOut(OrgOut):
    member_count: int
    members: list[MemberOut]


def org_out(org: Organization) -> OrgOut:
    return OrgOut(
        id=org.id,
        name=org.name,
        slug=org.slug,
        logo=org.logo,
        metadata=dict(org.metadata),
        created_at=org.created_at,
    )


def org_detail_out(detail: OrganizationDetail) -> OrgDetailOut:
    org = detail.organization
    return OrgDetailOut(
        id=org.id,
        name=org.name,
        slug=org.slug,
        logo=org.logo,
        metadata=dict(org.metadata),
        created_at=org.created_at,
        member_count=detail.member_count,
        members=[member_with_user_out(m) for m in detail.members],
    )


class AddMemberIn(CamelModel):
    user_id: str | None = None
    email: str | None = None
    role: Any = None


class RemoveMemberIn(CamelModel):
    user_id: Any = None


# --- plans / subscriptions ---


class PlanCreateIn(CamelModel):
    name: Any = None
    price_per_seat: Any = None
    features: Any = None


class PlanUpdateIn(CamelModel):
    name: Any = None
    price_per_seat: Any = None
    features: Any = None


class PlanOut(CamelModel):
    id: str
    name: str
    price_per_seat: float
    features: list[str]
    created_at: datetime
    updated_at: datetime
    active_subscribers: int | None = None


def plan_out(plan: Plan, active_subscribers: int | None = None) -> PlanOut:
    return PlanOut(
        id=plan.id,
        name=plan.name,
        price_per_seat=plan.price_per_seat,
        features=list(plan.features),
        created_at=plan.created_at,
        updated_at=plan.updated_at,
        active_subscribers=active_subscribers,
    )


def plan_with_subscribers_out(p: PlanWithSubscribers) -> PlanOut:
    return plan_out(p.plan, p.active_subscribers)


class SubscriptionCreateIn(CamelModel):
    organization_id: Any = None
    plan_id: Any = None
    active_seats: Any = 0


class SubscriptionOut(CamelModel):
    id: str
    organization_id: str
    plan_id: str
    active_seats: int
    status: str
    created_at: datetime
    organization: OrgOut | None = None
    plan: PlanOut | None = None


def subscription_out(detail: SubscriptionDetail) -> SubscriptionOut:
    sub = detail.subscription
    return SubscriptionOut(
        id=sub.id,
        organization_id=sub.organization_id,
        plan_id=sub.plan_id,
        active_seats=sub.active_seats,
        status=sub.status.value,
        created_at=sub.created_at,
        organization=org_out(detail.organization) if detail.organization else None,
        plan=plan_out(detail.plan) if detail.plan else None,
    )
