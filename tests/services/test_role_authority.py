from __future__ import annotations

import asyncio

import pytest

from org_service.models.auth_context import AuthContext
from org_service.models.organization import MemberRole
from org_service.models.user import GlobalRole
from org_service.repos.registry import Repos
from org_service.services import role_authority
from org_service.services.errors import ForbiddenError, NotFoundError
from tests.conftest import actor_for, add_test_member, create_test_org, make_user


@pytest.mark.parametrize(
    "role,can_manage,can_toggle",
    [
        (MemberRole.OWNER, False, True),
        (MemberRole.MANAGER, True, False),
        (MemberRole.ADMIN, True, False),
        (MemberRole.USER, False, False),
        (MemberRole.DISPATCHER, False, False),
        (MemberRole.DRIVER, False, False),
    ],
)
def test_gates_by_membership_role(
    repos: Repos, role: str, can_manage: bool, can_toggle: bool
) -> None:
    org = create_test_org("gates")
    u = make_user("u@example.com")
    add_test_member(org, u, role)

    assert asyncio.run(role_authority.can_manage_organization(repos, u.id, org.id)) is (
        can_manage
    )
    assert asyncio.run(role_authority.can_toggle_member(repos, u.id, org.id)) is (
        can_toggle
    )


def test_super_admin_passes_both_gates_without_membership(repos: Repos) -> None:
    org = create_test_org("gates")
    root = make_user("root@example.com", role=GlobalRole.SUPER_ADMIN)

    assert asyncio.run(role_authority.can_manage_organization(repos, root.id, org.id))
    assert asyncio.run(role_authority.can_toggle_member(repos, root.id, org.id))


def test_membership_in_another_org_does_not_count(repos: Repos) -> None:
    mine = create_test_org("mine")
    theirs = create_test_org("theirs")
    u = make_user("u@example.com")
    add_test_member(mine, u, MemberRole.MANAGER)

    assert not asyncio.run(role_authority.can_manage_organization(repos, u.id, theirs.id))


def test_gates_fail_closed_on_unknown_user(repos: Repos) -> None:
    org = create_test_org("gates")
    assert not asyncio.run(role_authority.can_manage_organization(repos, "ghost", org.id))
    assert not asyncio.run(role_authority.can_toggle_member(repos, "ghost", org.id))


def test_gates_fail_closed_when_lookup_raises(repos: Repos) -> None:
    class _BrokenMembers:
        async def get(self, org_id: str, user_id: str):
            raise ConnectionError("database went away")

    u = make_user("u@example.com")
    broken = Repos(
        users=repos.users,
        orgs=repos.orgs,
        members=_BrokenMembers(),  # type: ignore[arg-type]
        plans=repos.plans,
        subscriptions=repos.subscriptions,
    )
    assert not asyncio.run(role_authority.can_manage_organization(broken, u.id, "o"))


def test_resolve_global_role(repos: Repos) -> None:
    root = make_user("root@example.com", role=GlobalRole.SUPER_ADMIN)
    assert (
        asyncio.run(role_authority.resolve_global_role(repos, root.id))
        is GlobalRole.SUPER_ADMIN
    )
    with pytest.raises(NotFoundError, match="User not found"):
        asyncio.run(role_authority.resolve_global_role(repos, "ghost"))


def test_resolve_membership_defaults_to_first(repos: Repos) -> None:
    org = create_test_org("first")
    u = make_user("u@example.com")
    m = add_test_member(org, u, MemberRole.DRIVER)

    assert asyncio.run(role_authority.resolve_membership(repos, u.id)) == m
    assert asyncio.run(role_authority.resolve_membership(repos, u.id, org.id)) == m
    assert asyncio.run(role_authority.resolve_membership(repos, u.id, "other")) is None


def test_require_guards(repos: Repos) -> None:
    org = create_test_org("guards")
    u = make_user("u@example.com")
    add_test_member(org, u, MemberRole.OWNER)
    actor = actor_for(u)

    with pytest.raises(ForbiddenError, match="Insufficient permissions"):
        asyncio.run(role_authority.require_super_admin(repos, actor))
    with pytest.raises(ForbiddenError, match="Access denied"):
        asyncio.run(role_authority.require_manage_rights(repos, actor, org.id))

    ghost = AuthContext(user_id="not-stored", email="g@example.com")
    with pytest.raises(NotFoundError):
        asyncio.run(role_authority.require_manage_rights(repos, ghost, org.id))
