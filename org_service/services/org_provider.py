"""Organization sub-API of the authentication provider.

Organization creation and membership changes are bookkeeping the
authentication provider owns (it also keeps its own session/role
caches in sync).  The services call it through ``OrganizationProvider``
and pass any ``ProviderError`` back to the client untouched.

``LocalOrganizationProvider`` is the in-process implementation used
when the provider shares our database.  It applies the provider-side
rules:

  - creation policy: anyone, or SUPER_ADMIN only (ORG_CREATE_POLICY)
  - the creator becomes ``owner``; a SUPER_ADMIN provisioning an
    organization for a customer does not
  - role names must come from the known vocabulary
  - one membership per (organization, user), one organization per user
  - members are removed by membership id or by email
"""

from __future__ import annotations

import logging
from typing import Protocol

from org_service.core.config import OrgCreatePolicy
from org_service.models.auth_context import AuthContext
from org_service.models.organization import MemberRole, Membership, Organization
from org_service.models.user import GlobalRole
from org_service.repos.registry import Repos

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Rejection from the provider, with its status and message."""

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class OrganizationProvider(Protocol):
    async def create_organization(
        self, *, name: str, slug: str, actor: AuthContext
    ) -> Organization: ...

    async def add_member(
        self, *, user_id: str, role: str, organization_id: str
    ) -> Membership: ...

    async def remove_member(
        self, *, member_id_or_email: str, organization_id: str, actor: AuthContext
    ) -> Membership: ...


class LocalOrganizationProvider:
    def __init__(self, repos: Repos, *, create_policy: OrgCreatePolicy = "any") -> None:
        self._repos = repos
        self._create_policy = create_policy

    async def create_organization(
        self, *, name: str, slug: str, actor: AuthContext
    ) -> Organization:
        creator = await self._repos.users.get_by_id(actor.user_id)
        if creator is None:
            raise ProviderError(401, "Unauthorized")

        is_super_admin = creator.global_role is GlobalRole.SUPER_ADMIN
        if self._create_policy == "super_admin" and not is_super_admin:
            raise ProviderError(403, "You are not allowed to create organizations")

        if not is_super_admin and await self._repos.members.first_for_user(creator.id):
            raise ProviderError(409, "User already belongs to an organization")

        org = Organization.new(name=name, slug=slug)
        try:
            await self._repos.orgs.add(org)
        except ValueError:
            raise ProviderError(409, "Organization already exists") from None

        if not is_super_admin:
            await self._repos.members.add(
                Membership.new(
                    organization_id=org.id, user_id=creator.id, role=MemberRole.OWNER
                )
            )
        logger.info(
            "Provider created org=%s slug=%s owner=%s",
            org.id,
            org.slug,
            None if is_super_admin else creator.id,
        )
        return org

    async def add_member(
        self, *, user_id: str, role: str, organization_id: str
    ) -> Membership:
        if role not in MemberRole.ALL:
            raise ProviderError(400, f"Invalid role: {role}")
        if await self._repos.orgs.get_by_id(organization_id) is None:
            raise ProviderError(400, "Organization not found")
        if await self._repos.users.get_by_id(user_id) is None:
            raise ProviderError(400, "User not found")

        existing = await self._repos.members.first_for_user(user_id)
        if existing is not None:
            if existing.organization_id == organization_id:
                raise ProviderError(409, "User is already a member of this organization")
            raise ProviderError(409, "User already belongs to another organization")

        membership = Membership.new(
            organization_id=organization_id, user_id=user_id, role=role
        )
        try:
            await self._repos.members.add(membership)
        except ValueError:
            raise ProviderError(
                409, "User is already a member of this organization"
            ) from None
        return membership

    async def remove_member(
        self, *, member_id_or_email: str, organization_id: str, actor: AuthContext
    ) -> Membership:
        membership = await self._find_member(member_id_or_email, organization_id)
        if membership is None:
            raise ProviderError(400, "Member not found")
        await self._repos.members.remove(organization_id, membership.user_id)
        logger.info(
            "Provider removed user=%s from org=%s (by user=%s)",
            membership.user_id,
            organization_id,
            actor.user_id,
        )
        return membership

    async def _find_member(
        self, member_id_or_email: str, organization_id: str
    ) -> Membership | None:
        if "@" in member_id_or_email:
            user = await self._repos.users.get_by_email(member_id_or_email)
            if user is None:
                return None
            return await self._repos.members.get(organization_id, user.id)
        for m in await self._repos.members.list_by_org(organization_id):
            if m.id == member_id_or_email:
                return m
        return None
