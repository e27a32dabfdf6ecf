"""Plans and company subscriptions.

Reading plans is open to any authenticated user; every write, and
everything about subscriptions, is SUPER_ADMIN only.  An organization
holds at most one ACTIVE subscription; the repository write enforces
it and a violation surfaces here as 409.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from org_service.core.metrics import LIFECYCLE_EVENTS
from org_service.models.auth_context import AuthContext
from org_service.models.organization import Organization
from org_service.models.plan import CompanySubscription, Plan, SubscriptionStatus
from org_service.repos.registry import Repos
from org_service.services import role_authority
from org_service.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlanWithSubscribers:
    plan: Plan
    active_subscribers: int


@dataclass(frozen=True, slots=True)
class SubscriptionDetail:
    subscription: CompanySubscription
    organization: Organization | None
    plan: Plan | None


# -- validation --------------------------------------------------------------


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Plan name is required")
    return name.strip()


def _check_price(price: Any) -> float:
    # bool is an int subclass; True is not a price
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise ValidationError("pricePerSeat must be a number")
    if price < 0:
        raise ValidationError("pricePerSeat must not be negative")
    return float(price)


def _check_features(features: Any) -> list[str]:
    if not isinstance(features, list) or not all(isinstance(f, str) for f in features):
        raise ValidationError("features must be a list of strings")
    return features


def _check_seats(seats: Any) -> int:
    if isinstance(seats, bool) or not isinstance(seats, int) or seats < 0:
        raise ValidationError("activeSeats must be a non-negative integer")
    return seats


# -- plans -------------------------------------------------------------------


async def list_plans(repos: Repos) -> list[PlanWithSubscribers]:
    counts = await repos.subscriptions.count_active_by_plan()
    return [
        PlanWithSubscribers(plan=p, active_subscribers=counts.get(p.id, 0))
        for p in await repos.plans.list_all()
    ]


async def _require_plan(repos: Repos, plan_id: str) -> Plan:
    plan = await repos.plans.get_by_id(plan_id)
    if plan is None:
        raise NotFoundError("Plan not found")
    return plan


async def get_plan(repos: Repos, plan_id: str) -> PlanWithSubscribers:
    plan = await _require_plan(repos, plan_id)
    counts = await repos.subscriptions.count_active_by_plan()
    return PlanWithSubscribers(plan=plan, active_subscribers=counts.get(plan.id, 0))


async def create_plan(
    repos: Repos,
    actor: AuthContext,
    *,
    name: Any,
    price_per_seat: Any,
    features: Any,
) -> Plan:
    await role_authority.require_super_admin(repos, actor)
    plan = Plan.new(
        name=_check_name(name),
        price_per_seat=_check_price(price_per_seat),
        features=_check_features(features),
    )

    if await repos.plans.get_by_name(plan.name) is not None:
        raise ConflictError("Plan already exists")
    try:
        await repos.plans.add(plan)
    except ValueError:
        raise ConflictError("Plan already exists") from None

    LIFECYCLE_EVENTS.labels(event="plan_created").inc()
    logger.info("Created plan=%s name=%s by user=%s", plan.id, plan.name, actor.user_id)
    return plan


async def update_plan(
    repos: Repos, actor: AuthContext, plan_id: str, patch: Mapping[str, Any]
) -> Plan:
    await role_authority.require_super_admin(repos, actor)
    await _require_plan(repos, plan_id)

    changes: dict[str, Any] = {}
    if patch.get("name") is not None:
        changes["name"] = _check_name(patch["name"])
    if patch.get("price_per_seat") is not None:
        changes["price_per_seat"] = _check_price(patch["price_per_seat"])
    if patch.get("features") is not None:
        changes["features"] = _check_features(patch["features"])
    if not changes:
        return await _require_plan(repos, plan_id)

    try:
        updated = await repos.plans.update(plan_id, changes)
    except ValueError:
        raise ConflictError("Plan already exists") from None
    if updated is None:
        raise NotFoundError("Plan not found")

    LIFECYCLE_EVENTS.labels(event="plan_updated").inc()
    logger.info(
        "Updated plan=%s fields=%s by user=%s", plan_id, sorted(changes), actor.user_id
    )
    return updated


async def delete_plan(repos: Repos, actor: AuthContext, plan_id: str) -> None:
    await role_authority.require_super_admin(repos, actor)
    await _require_plan(repos, plan_id)

    if await repos.subscriptions.count_by_plan(plan_id):
        logger.warning("Refused delete of plan=%s with subscriptions", plan_id)
        raise ConflictError("Plan has subscriptions and cannot be deleted")
    await repos.plans.delete(plan_id)

    LIFECYCLE_EVENTS.labels(event="plan_deleted").inc()
    logger.info("Deleted plan=%s by user=%s", plan_id, actor.user_id)


# -- subscriptions -----------------------------------------------------------


async def _expand(repos: Repos, sub: CompanySubscription) -> SubscriptionDetail:
    return SubscriptionDetail(
        subscription=sub,
        organization=await repos.orgs.get_by_id(sub.organization_id),
        plan=await repos.plans.get_by_id(sub.plan_id),
    )


async def create_subscription(
    repos: Repos,
    actor: AuthContext,
    *,
    organization_id: Any,
    plan_id: Any,
    active_seats: Any = 0,
) -> SubscriptionDetail:
    await role_authority.require_super_admin(repos, actor)
    if not isinstance(organization_id, str) or not organization_id:
        raise ValidationError("organizationId is required")
    if not isinstance(plan_id, str) or not plan_id:
        raise ValidationError("planId is required")
    seats = _check_seats(active_seats)

    if await repos.orgs.get_by_id(organization_id) is None:
        raise NotFoundError("Organization can not be found")
    if await repos.plans.get_by_id(plan_id) is None:
        raise NotFoundError("Plan not found")

    sub = CompanySubscription.new(
        organization_id=organization_id, plan_id=plan_id, active_seats=seats
    )
    try:
        await repos.subscriptions.add(sub)
    except ValueError:
        logger.warning(
            "Rejected second ACTIVE subscription for org=%s", organization_id
        )
        raise ConflictError("Company already has an active plan") from None

    LIFECYCLE_EVENTS.labels(event="subscription_created").inc()
    logger.info(
        "Subscribed org=%s to plan=%s seats=%d by user=%s",
        organization_id,
        plan_id,
        seats,
        actor.user_id,
    )
    return await _expand(repos, sub)


async def list_subscriptions(
    repos: Repos, actor: AuthContext, organization_id: str | None = None
) -> list[SubscriptionDetail]:
    await role_authority.require_super_admin(repos, actor)
    return [
        await _expand(repos, s)
        for s in await repos.subscriptions.list_all(organization_id)
    ]


async def get_subscription(
    repos: Repos, actor: AuthContext, subscription_id: str
) -> SubscriptionDetail:
    await role_authority.require_super_admin(repos, actor)
    sub = await repos.subscriptions.get_by_id(subscription_id)
    if sub is None:
        raise NotFoundError("Subscription not found")
    return await _expand(repos, sub)


async def cancel_subscription(
    repos: Repos, actor: AuthContext, subscription_id: str
) -> SubscriptionDetail:
    await role_authority.require_super_admin(repos, actor)
    sub = await repos.subscriptions.get_by_id(subscription_id)
    if sub is None:
        raise NotFoundError("Subscription not found")
    if not sub.is_active:
        raise ConflictError("Subscription is not active")

    cancelled = await repos.subscriptions.set_status(
        subscription_id, SubscriptionStatus.CANCELLED
    )
    if cancelled is None:
        raise NotFoundError("Subscription not found")

    LIFECYCLE_EVENTS.labels(event="subscription_cancelled").inc()
    logger.info(
        "Cancelled subscription=%s org=%s by user=%s",
        subscription_id,
        sub.organization_id,
        actor.user_id,
    )
    return await _expand(repos, cancelled)
