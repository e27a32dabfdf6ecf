"""Organization and membership endpoints.

Routes are thin: each one resolves the caller, hands the request to the
lifecycle or membership service and shapes the result.  Authorization
happens in the services, so the same rules apply whichever surface
calls them.
"""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel

from org_service.api.dependencies import ActorDep, OrgIdDep, OrgProviderDep, RepoDep
from org_service.api.schemas import (
    AddMemberIn,
    CamelModel,
    MemberOut,
    OrgCreateIn,
    OrgDetailOut,
    OrgOut,
    OrgUpdateIn,
    RemoveMemberIn,
    member_out,
    member_with_user_out,
    org_detail_out,
    org_out,
)
from org_service.services import members_service, organizations_service

router = APIRouter(prefix="/organizations", tags=["organizations"])


# --- Response envelopes ---


class OrgDataOut(BaseModel):
    data: OrgOut


class OrgListOut(BaseModel):
    data: list[OrgDetailOut]


class OrgEnvelopeOut(BaseModel):
    organization: OrgOut


class OrgDetailEnvelopeOut(BaseModel):
    organization: OrgDetailOut


class MyOrgOut(BaseModel):
    organization: OrgOut
    role: str


class RoleOut(CamelModel):
    global_role: str
    organization_id: str | None
    member_role: str | None


class MessageOut(BaseModel):
    message: str


class MembersOut(BaseModel):
    members: list[MemberOut]


class MemberDataOut(BaseModel):
    data: MemberOut


class ToggleOut(BaseModel):
    member: MemberOut
    message: str


# --- Organizations ---


@router.post("", response_model=OrgDataOut, status_code=status.HTTP_201_CREATED)
async def create_org(
    body: OrgCreateIn,
    actor: ActorDep,
    repos: RepoDep,
    provider: OrgProviderDep,
) -> OrgDataOut:
    """Create an organization; the slug is derived from the name."""
    org = await organizations_service.create(repos, provider, actor, body.name)
    return OrgDataOut(data=org_out(org))


@router.get("", response_model=OrgListOut)
async def list_orgs(actor: ActorDep, repos: RepoDep) -> OrgListOut:
    """All organizations with their members. SUPER_ADMIN only."""
    details = await organizations_service.list_all(repos, actor)
    return OrgListOut(data=[org_detail_out(d) for d in details])


# /me and /role must be registered before /{org_id}


@router.get("/me", response_model=MyOrgOut)
async def get_my_org(actor: ActorDep, repos: RepoDep) -> MyOrgOut:
    mine = await organizations_service.get_mine(repos, actor)
    return MyOrgOut(organization=org_out(mine.organization), role=mine.role)


@router.get("/role", response_model=RoleOut)
async def get_my_role(actor: ActorDep, repos: RepoDep) -> RoleOut:
    info = await organizations_service.get_role(repos, actor)
    return RoleOut(
        global_role=info.global_role.value,
        organization_id=info.organization_id,
        member_role=info.member_role,
    )


@router.get("/{org_id}", response_model=OrgDetailEnvelopeOut)
async def get_org(
    org_id: OrgIdDep, actor: ActorDep, repos: RepoDep
) -> OrgDetailEnvelopeOut:
    """Organization details. Members and SUPER_ADMIN only; others get 404."""
    detail = await organizations_service.get(repos, actor, org_id)
    return OrgDetailEnvelopeOut(organization=org_detail_out(detail))


@router.put("/{org_id}", response_model=OrgEnvelopeOut)
async def update_org(
    org_id: OrgIdDep, body: OrgUpdateIn, actor: ActorDep, repos: RepoDep
) -> OrgEnvelopeOut:
    patch = body.model_dump(exclude_unset=True)
    org = await organizations_service.update(repos, actor, org_id, patch)
    return OrgEnvelopeOut(organization=org_out(org))


@router.delete("/{org_id}", response_model=MessageOut)
async def delete_org(org_id: OrgIdDep, actor: ActorDep, repos: RepoDep) -> MessageOut:
    await organizations_service.delete(repos, actor, org_id)
    return MessageOut(message="Successfully deleted")


# --- Members ---


@router.get("/{org_id}/members", response_model=MembersOut)
async def list_members(
    org_id: OrgIdDep, actor: ActorDep, repos: RepoDep
) -> MembersOut:
    members = await members_service.list_members(repos, actor, org_id)
    return MembersOut(members=[member_with_user_out(m) for m in members])


@router.post(
    "/{org_id}/members",
    response_model=MemberDataOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    org_id: OrgIdDep,
    body: AddMemberIn,
    actor: ActorDep,
    repos: RepoDep,
    provider: OrgProviderDep,
) -> MemberDataOut:
    membership = await members_service.add_member(
        repos,
        provider,
        actor,
        org_id,
        role=body.role,
        user_id=body.user_id,
        email=body.email,
    )
    return MemberDataOut(data=member_out(membership))


@router.delete("/{org_id}/members", response_model=MemberDataOut)
async def remove_member(
    org_id: OrgIdDep,
    actor: ActorDep,
    repos: RepoDep,
    provider: OrgProviderDep,
    body: RemoveMemberIn | None = None,
) -> MemberDataOut:
    """Remove the member given by ``userId`` in the body."""
    removed = await members_service.remove_member(
        repos, provider, actor, org_id, body.user_id if body else None
    )
    return MemberDataOut(data=member_out(removed))


@router.patch(
    "/{org_id}/members/{target_user_id}/toggleExtension",
    response_model=ToggleOut,
)
async def toggle_extension(
    org_id: OrgIdDep,
    target_user_id: str,
    actor: ActorDep,
    repos: RepoDep,
) -> ToggleOut:
    """Switch the member's extension on or off. Owner or SUPER_ADMIN."""
    result = await members_service.toggle_member_extension(
        repos, actor, org_id, target_user_id
    )
    return ToggleOut(member=member_with_user_out(result.member), message=result.message)
