from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from org_service.api.dependencies import ActorDep, RepoDep
from org_service.api.schemas import (
    SubscriptionCreateIn,
    SubscriptionOut,
    subscription_out,
)
from org_service.services import plans_service

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


class SubscriptionEnvelopeOut(BaseModel):
    subscription: SubscriptionOut


class SubscriptionsOut(BaseModel):
    subscriptions: list[SubscriptionOut]


@router.post(
    "",
    response_model=SubscriptionEnvelopeOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    body: SubscriptionCreateIn, actor: ActorDep, repos: RepoDep
) -> SubscriptionEnvelopeOut:
    """Subscribe an organization to a plan. At most one ACTIVE per organization."""
    detail = await plans_service.create_subscription(
        repos,
        actor,
        organization_id=body.organization_id,
        plan_id=body.plan_id,
        active_seats=body.active_seats,
    )
    return SubscriptionEnvelopeOut(subscription=subscription_out(detail))


@router.get("", response_model=SubscriptionsOut)
async def list_subscriptions(
    actor: ActorDep,
    repos: RepoDep,
    organization_id: Annotated[str | None, Query(alias="organizationId")] = None,
) -> SubscriptionsOut:
    details = await plans_service.list_subscriptions(repos, actor, organization_id)
    return SubscriptionsOut(subscriptions=[subscription_out(d) for d in details])


@router.get("/{subscription_id}", response_model=SubscriptionEnvelopeOut)
async def get_subscription(
    subscription_id: str, actor: ActorDep, repos: RepoDep
) -> SubscriptionEnvelopeOut:
    detail = await plans_service.get_subscription(repos, actor, subscription_id)
    return SubscriptionEnvelopeOut(subscription=subscription_out(detail))


@router.post("/{subscription_id}/cancel", response_model=SubscriptionEnvelopeOut)
async def cancel_subscription(
    subscription_id: str, actor: ActorDep, repos: RepoDep
) -> SubscriptionEnvelopeOut:
    detail = await plans_service.cancel_subscription(repos, actor, subscription_id)
    return SubscriptionEnvelopeOut(subscription=subscription_out(detail))
