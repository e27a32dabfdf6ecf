"""Role authority: who may do what, on two axes.

Global role (USER, SUPER_ADMIN) lives on the user row.  Membership role
(owner, MANAGER, ADMIN, USER, ...) lives on the membership row and only
means something inside that one organization.

Two organization gates exist and are intentionally NOT the same set:

  can_manage_organization   SUPER_ADMIN, or membership role MANAGER/ADMIN
                            (update organization, add/remove/list members)

  can_toggle_member         SUPER_ADMIN, or membership role owner
                            (switch a member's extension on and off)

An owner therefore cannot edit the organization through the manage gate
unless they also hold MANAGER/ADMIN.

Predicates are fail-closed: any lookup failure is logged and answered
with False.  The ``require_*`` guards are what operations call; they
turn a missing user into 404 and a failed predicate into 403 before any
state is touched.
"""

from __future__ import annotations

import logging

from org_service.core.metrics import AUTHZ_DECISIONS
from org_service.models.auth_context import AuthContext
from org_service.models.organization import MemberRole, Membership
from org_service.models.user import GlobalRole
from org_service.repos.registry import Repos
from org_service.services.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

MANAGE_ROLES = frozenset({MemberRole.MANAGER, MemberRole.ADMIN})
TOGGLE_ROLES = frozenset({MemberRole.OWNER})


def _record(gate: str, allowed: bool) -> bool:
    AUTHZ_DECISIONS.labels(gate=gate, result="allow" if allowed else "deny").inc()
    return allowed


async def resolve_global_role(repos: Repos, user_id: str) -> GlobalRole:
    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user.global_role


async def resolve_membership(
    repos: Repos, user_id: str, org_id: str | None = None
) -> Membership | None:
    """The user's membership in ``org_id``, or their first one when omitted."""
    if org_id is None:
        return await repos.members.first_for_user(user_id)
    return await repos.members.get(org_id, user_id)


async def _has_org_role(
    repos: Repos, user_id: str, org_id: str, roles: frozenset[str], gate: str
) -> bool:
    try:
        if await resolve_global_role(repos, user_id) is GlobalRole.SUPER_ADMIN:
            return _record(gate, True)
        membership = await resolve_membership(repos, user_id, org_id)
    except Exception:
        logger.warning(
            "Role lookup failed, denying gate=%s user=%s org=%s",
            gate,
            user_id,
            org_id,
            exc_info=True,
        )
        return _record(gate, False)
    return _record(gate, membership is not None and membership.role in roles)


async def can_manage_organization(repos: Repos, user_id: str, org_id: str) -> bool:
    return await _has_org_role(
        repos, user_id, org_id, MANAGE_ROLES, "manage_organization"
    )


async def can_toggle_member(repos: Repos, user_id: str, org_id: str) -> bool:
    return await _has_org_role(repos, user_id, org_id, TOGGLE_ROLES, "toggle_member")


async def is_super_admin(repos: Repos, actor: AuthContext) -> bool:
    return await resolve_global_role(repos, actor.user_id) is GlobalRole.SUPER_ADMIN


async def require_super_admin(repos: Repos, actor: AuthContext) -> None:
    if not _record("super_admin", await is_super_admin(repos, actor)):
        logger.warning("Access denied: user=%s is not SUPER_ADMIN", actor.user_id)
        raise ForbiddenError("Insufficient permissions")


async def require_manage_rights(repos: Repos, actor: AuthContext, org_id: str) -> None:
    # An unknown user is reported as such, not folded into the 403 below.
    await resolve_global_role(repos, actor.user_id)
    if not await can_manage_organization(repos, actor.user_id, org_id):
        logger.warning(
            "Access denied: user=%s cannot manage org=%s", actor.user_id, org_id
        )
        raise ForbiddenError("Access denied: insufficient permissions")
