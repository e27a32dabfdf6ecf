from __future__ import annotations

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from org_service.api.dependencies import ActorDep, RepoDep
from org_service.api.schemas import (
    PlanCreateIn,
    PlanOut,
    PlanUpdateIn,
    plan_out,
    plan_with_subscribers_out,
)
from org_service.services import plans_service

router = APIRouter(prefix="/plans", tags=["plans"])


class PlansOut(BaseModel):
    plans: list[PlanOut]


class PlanEnvelopeOut(BaseModel):
    plan: PlanOut


@router.get("", response_model=PlansOut)
async def list_plans(_actor: ActorDep, repos: RepoDep) -> PlansOut:
    """Every plan with its number of ACTIVE subscriptions."""
    plans = await plans_service.list_plans(repos)
    return PlansOut(plans=[plan_with_subscribers_out(p) for p in plans])


@router.get("/{plan_id}", response_model=PlanEnvelopeOut)
async def get_plan(plan_id: str, _actor: ActorDep, repos: RepoDep) -> PlanEnvelopeOut:
    plan = await plans_service.get_plan(repos, plan_id)
    return PlanEnvelopeOut(plan=plan_with_subscribers_out(plan))


@router.post("", response_model=PlanEnvelopeOut, status_code=status.HTTP_201_CREATED)
async def create_plan(
    body: PlanCreateIn, actor: ActorDep, repos: RepoDep
) -> PlanEnvelopeOut:
    plan = await plans_service.create_plan(
        repos,
        actor,
        name=body.name,
        price_per_seat=body.price_per_seat,
        features=body.features,
    )
    return PlanEnvelopeOut(plan=plan_out(plan))


@router.patch("/{plan_id}", response_model=PlanEnvelopeOut)
async def update_plan(
    plan_id: str, body: PlanUpdateIn, actor: ActorDep, repos: RepoDep
) -> PlanEnvelopeOut:
    patch = body.model_dump(exclude_unset=True)
    plan = await plans_service.update_plan(repos, actor, plan_id, patch)
    return PlanEnvelopeOut(plan=plan_out(plan))


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(plan_id: str, actor: ActorDep, repos: RepoDep) -> Response:
    """Delete a plan nobody has ever subscribed to. SUPER_ADMIN only."""
    await plans_service.delete_plan(repos, actor, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
