"""Organization lifecycle: create, read, update, delete."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from org_service.core.metrics import LIFECYCLE_EVENTS
from org_service.models.auth_context import AuthContext
from org_service.models.organization import Membership, MemberWithUser, Organization
from org_service.models.user import GlobalRole
from org_service.repos.registry import Repos
from org_service.services import role_authority
from org_service.services.errors import (
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from org_service.services.org_provider import OrganizationProvider, ProviderError

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SLUG_FORM = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


@dataclass(frozen=True, slots=True)
class OrganizationDetail:
    organization: Organization
    members: list[MemberWithUser]

    @property
    def member_count(self) -> int:
        return len(self.members)


@dataclass(frozen=True, slots=True)
class MyOrganization:
    organization: Organization
    role: str


@dataclass(frozen=True, slots=True)
class RoleInfo:
    global_role: GlobalRole
    organization_id: str | None
    member_role: str | None


def slugify(name: str) -> str:
    """Lowercase; runs of anything but a-z0-9 become one hyphen; trim hyphens.

    >>> slugify("  Acme, Inc. ")
    'acme-inc'
    """
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


async def _with_users(repos: Repos, members: list[Membership]) -> list[MemberWithUser]:
    users = await repos.users.get_many(m.user_id for m in members)
    return [MemberWithUser(membership=m, user=users.get(m.user_id)) for m in members]


async def create(
    repos: Repos, provider: OrganizationProvider, actor: AuthContext, name: Any
) -> Organization:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    name = name.strip()
    slug = slugify(name)
    if not slug:
        raise ValidationError("Name must contain at least one letter or digit")

    if await repos.orgs.get_by_slug(slug) is not None:
        logger.warning("Rejected duplicate org slug=%s", slug)
        raise ConflictError("Slug already in use")

    try:
        org = await provider.create_organization(name=name, slug=slug, actor=actor)
    except ProviderError as e:
        logger.warning("Provider rejected org creation slug=%s: %s", slug, e.message)
        if e.status_code == 409 and await repos.orgs.get_by_slug(slug) is not None:
            # lost the race against a concurrent create of the same slug
            raise ConflictError("Slug already in use") from None
        raise UpstreamError(e.message, e.status_code) from None

    LIFECYCLE_EVENTS.labels(event="organization_created").inc()
    logger.info("Created org=%s slug=%s by user=%s", org.id, org.slug, actor.user_id)
    return org


async def get(repos: Repos, actor: AuthContext, org_id: str) -> OrganizationDetail:
    """Organization with its members.

    Non-members get the same 404 as for an id that does not exist, so
    the endpoint cannot be used to probe which organizations exist.
    """
    global_role = await role_authority.resolve_global_role(repos, actor.user_id)
    org = await repos.orgs.get_by_id(org_id)
    if org is not None and global_role is not GlobalRole.SUPER_ADMIN:
        if await role_authority.resolve_membership(repos, actor.user_id, org_id) is None:
            org = None
    if org is None:
        raise NotFoundError("Organization not found or no access")

    members = await repos.members.list_by_org(org.id)
    return OrganizationDetail(organization=org, members=await _with_users(repos, members))


async def list_all(repos: Repos, actor: AuthContext) -> list[OrganizationDetail]:
    """Every organization, newest first. SUPER_ADMIN only."""
    await role_authority.require_super_admin(repos, actor)
    result = []
    for org in await repos.orgs.list_all():
        members = await repos.members.list_by_org(org.id)
        result.append(
            OrganizationDetail(organization=org, members=await _with_users(repos, members))
        )
    return result


async def get_mine(repos: Repos, actor: AuthContext) -> MyOrganization:
    membership = await role_authority.resolve_membership(repos, actor.user_id)
    org = None
    if membership is not None:
        org = await repos.orgs.get_by_id(membership.organization_id)
    if membership is None or org is None:
        raise NotFoundError("No organization membership found")
    return MyOrganization(organization=org, role=membership.role)


async def get_role(repos: Repos, actor: AuthContext) -> RoleInfo:
    global_role = await role_authority.resolve_global_role(repos, actor.user_id)
    membership = await role_authority.resolve_membership(repos, actor.user_id)
    return RoleInfo(
        global_role=global_role,
        organization_id=membership.organization_id if membership else None,
        member_role=membership.role if membership else None,
    )


def _clean_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
    changes = {k: v for k, v in patch.items() if v is not None}

    if "name" in changes:
        if not isinstance(changes["name"], str) or not changes["name"].strip():
            raise ValidationError("Name must be a non-empty string")
        changes["name"] = changes["name"].strip()
    if "slug" in changes:
        if not isinstance(changes["slug"], str) or not _SLUG_FORM.match(changes["slug"]):
            raise ValidationError(
                "Slug may only contain lowercase letters, digits and single hyphens"
            )
    if "logo" in changes and not isinstance(changes["logo"], str):
        raise ValidationError("Logo must be a string")
    if "metadata" in changes and not isinstance(changes["metadata"], Mapping):
        raise ValidationError("Metadata must be an object")
    return changes


async def update(
    repos: Repos, actor: AuthContext, org_id: str, patch: Mapping[str, Any]
) -> Organization:
    """Partial update: only keys present (and not null) in ``patch`` change."""
    await role_authority.require_manage_rights(repos, actor, org_id)
    changes = _clean_patch(patch)

    org = await repos.orgs.get_by_id(org_id)
    if org is None:
        raise NotFoundError("Organization not found")
    if not changes:
        return org

    try:
        updated = await repos.orgs.update(org_id, changes)
    except ValueError:
        logger.warning("Rejected slug change org=%s slug=%s", org_id, changes.get("slug"))
        raise ConflictError("Slug already in use") from None
    if updated is None:
        raise NotFoundError("Organization not found")

    LIFECYCLE_EVENTS.labels(event="organization_updated").inc()
    logger.info(
        "Updated org=%s fields=%s by user=%s", org_id, sorted(changes), actor.user_id
    )
    return updated


async def delete(repos: Repos, actor: AuthContext, org_id: str) -> None:
    await role_authority.require_super_admin(repos, actor)
    if await repos.orgs.get_by_id(org_id) is None:
        raise NotFoundError("Organization not found")

    removed = await repos.members.delete_by_org(org_id)
    dropped = await repos.subscriptions.delete_by_org(org_id)
    await repos.orgs.delete(org_id)

    LIFECYCLE_EVENTS.labels(event="organization_deleted").inc()
    logger.info(
        "Deleted org=%s with %d memberships and %d subscriptions by user=%s",
        org_id,
        removed,
        dropped,
        actor.user_id,
    )
