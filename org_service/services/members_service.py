"""Membership changes and the per-member extension switch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from org_service.core.metrics import LIFECYCLE_EVENTS
from org_service.models.auth_context import AuthContext
from org_service.models.organization import Membership, MemberWithUser
from org_service.models.user import User
from org_service.repos.registry import Repos
from org_service.services import role_authority
from org_service.services.errors import (
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from org_service.services.org_provider import OrganizationProvider, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToggleResult:
    member: MemberWithUser
    message: str


async def _require_org(repos: Repos, org_id: str) -> None:
    if await repos.orgs.get_by_id(org_id) is None:
        raise NotFoundError("Organization not found")


async def _move_seat(repos: Repos, org_id: str, delta: int) -> None:
    """Adjust the ACTIVE subscription's seats, if the organization has one."""
    subscription = await repos.subscriptions.get_active_for_org(org_id)
    if subscription is not None:
        await repos.subscriptions.adjust_seats(subscription.id, delta)


async def _resolve_user(
    repos: Repos, user_id: str | None, email: str | None
) -> User | None:
    user = await repos.users.get_by_id(user_id) if user_id else None
    if user is None and email:
        user = await repos.users.get_by_email(email)
    return user


async def add_member(
    repos: Repos,
    provider: OrganizationProvider,
    actor: AuthContext,
    org_id: str,
    *,
    role: Any,
    user_id: str | None = None,
    email: str | None = None,
) -> Membership:
    await role_authority.require_manage_rights(repos, actor, org_id)
    if not isinstance(role, str) or not role:
        raise ValidationError("Role is required")
    if not user_id and not email:
        raise ValidationError("userId or email is required")

    await _require_org(repos, org_id)
    user = await _resolve_user(repos, user_id, email)
    if user is None:
        raise NotFoundError("User not found")

    try:
        membership = await provider.add_member(
            user_id=user.id, role=role, organization_id=org_id
        )
    except ProviderError as e:
        logger.warning(
            "Provider rejected add of user=%s to org=%s: %s", user.id, org_id, e.message
        )
        raise UpstreamError(e.message, e.status_code) from None

    LIFECYCLE_EVENTS.labels(event="member_added").inc()
    logger.info(
        "Added user=%s to org=%s role=%s by user=%s",
        user.id,
        org_id,
        role,
        actor.user_id,
    )
    return membership


async def remove_member(
    repos: Repos,
    provider: OrganizationProvider,
    actor: AuthContext,
    org_id: str,
    user_id: Any,
) -> Membership:
    await role_authority.require_manage_rights(repos, actor, org_id)
    if not isinstance(user_id, str) or not user_id:
        raise ValidationError("userId is required")

    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    await _require_org(repos, org_id)

    try:
        removed = await provider.remove_member(
            member_id_or_email=user.email, organization_id=org_id, actor=actor
        )
    except ProviderError as e:
        logger.warning(
            "Provider rejected removal of user=%s from org=%s: %s",
            user.id,
            org_id,
            e.message,
        )
        raise UpstreamError(e.message, e.status_code) from None

    if user.extension_enabled:
        # the seat belongs to the organization being left
        await repos.users.set_extension_enabled(user.id, False)
        await _move_seat(repos, org_id, -1)

    LIFECYCLE_EVENTS.labels(event="member_removed").inc()
    logger.info(
        "Removed user=%s from org=%s by user=%s", user.id, org_id, actor.user_id
    )
    return removed


async def list_members(
    repos: Repos, actor: AuthContext, org_id: str
) -> list[MemberWithUser]:
    await role_authority.require_manage_rights(repos, actor, org_id)
    await _require_org(repos, org_id)

    members = await repos.members.list_by_org(org_id)
    users = await repos.users.get_many(m.user_id for m in members)
    return [MemberWithUser(membership=m, user=users.get(m.user_id)) for m in members]


async def toggle_member_extension(
    repos: Repos, actor: AuthContext, org_id: str, target_user_id: str
) -> ToggleResult:
    """Flip the target member's extension switch.

    Checks run in this order: actor's membership (404), actor's role
    (403), target's membership (404).  A SUPER_ADMIN skips the first two.
    While the organization has an ACTIVE subscription, switching on
    takes one seat and switching off gives one back.
    """
    if not await role_authority.is_super_admin(repos, actor):
        own = await role_authority.resolve_membership(repos, actor.user_id, org_id)
        if own is None:
            logger.warning(
                "Toggle denied: user=%s has no membership in org=%s",
                actor.user_id,
                org_id,
            )
            raise NotFoundError("You are not a member of this organization")
    if not await role_authority.can_toggle_member(repos, actor.user_id, org_id):
        logger.warning(
            "Toggle denied: user=%s is not owner of org=%s", actor.user_id, org_id
        )
        raise ForbiddenError("Access denied: insufficient permissions")

    target = await role_authority.resolve_membership(repos, target_user_id, org_id)
    if target is None:
        raise NotFoundError("Member not found")
    user = await repos.users.get_by_id(target_user_id)
    if user is None:
        raise NotFoundError("User not found")

    enabled = not user.extension_enabled
    updated = await repos.users.set_extension_enabled(user.id, enabled)
    if updated is None:
        raise NotFoundError("User not found")

    await _move_seat(repos, org_id, 1 if enabled else -1)

    state = "activated" if enabled else "deactivated"
    LIFECYCLE_EVENTS.labels(event=f"extension_{state}").inc()
    logger.info(
        "Extension %s for user=%s in org=%s by user=%s",
        state,
        user.id,
        org_id,
        actor.user_id,
    )
    return ToggleResult(
        member=MemberWithUser(membership=target, user=updated),
        message=f"Extension {state} for {updated.name or updated.email}",
    )
