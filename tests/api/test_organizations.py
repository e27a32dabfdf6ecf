from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from org_service.api import dependencies
from org_service.models.plan import CompanySubscription
from org_service.models.user import User
from tests.conftest import (
    add_test_member,
    auth,
    create_test_org,
    create_test_plan,
    make_user,
)


def test_end_to_end_create_conflict_delete(
    client: TestClient, super_admin: User
) -> None:
    assert client.get("/organizations").status_code == 401

    resp = client.post(
        "/organizations", json={"name": "Test Org"}, headers=auth(super_admin)
    )
    assert resp.status_code == 201
    org = resp.json()["data"]
    assert org["slug"] == "test-org"
    assert org["name"] == "Test Org"

    again = client.post(
        "/organizations", json={"name": "Test Org"}, headers=auth(super_admin)
    )
    assert again.status_code == 409
    assert again.json() == {"error": "Slug already in use"}

    deleted = client.delete(f"/organizations/{org['id']}", headers=auth(super_admin))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Successfully deleted"}

    gone = client.get(f"/organizations/{org['id']}", headers=auth(super_admin))
    assert gone.status_code == 404


def test_create_slug_normalizes_name(client: TestClient, user: User) -> None:
    resp = client.post(
        "/organizations", json={"name": "  Acme -- Trucking, Inc.  "}, headers=auth(user)
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["slug"] == "acme-trucking-inc"


def test_create_makes_creator_owner(client: TestClient, user: User) -> None:
    resp = client.post("/organizations", json={"name": "Mine"}, headers=auth(user))
    assert resp.status_code == 201

    mine = client.get("/organizations/me", headers=auth(user))
    assert mine.status_code == 200
    assert mine.json()["role"] == "owner"
    assert mine.json()["organization"]["slug"] == "mine"


def test_super_admin_creator_is_not_made_owner(
    client: TestClient, super_admin: User
) -> None:
    resp = client.post(
        "/organizations", json={"name": "Customer"}, headers=auth(super_admin)
    )
    assert resp.status_code == 201
    assert client.get("/organizations/me", headers=auth(super_admin)).status_code == 404


def test_create_rejects_missing_or_blank_name(client: TestClient, user: User) -> None:
    assert client.post("/organizations", json={}, headers=auth(user)).status_code == 400
    assert (
        client.post("/organizations", json={"name": "!!!"}, headers=auth(user)).status_code
        == 400
    )
    assert (
        client.post("/organizations", json={"name": 42}, headers=auth(user)).status_code
        == 400
    )


def test_second_org_for_same_user_is_rejected(client: TestClient, user: User) -> None:
    client.post("/organizations", json={"name": "First"}, headers=auth(user))
    resp = client.post("/organizations", json={"name": "Second"}, headers=auth(user))
    assert resp.status_code == 409
    assert resp.json() == {"error": "User already belongs to an organization"}


def test_get_hides_existence_from_non_members(client: TestClient) -> None:
    org = create_test_org("hidden")
    outsider = make_user("out@example.com")

    existing = client.get(f"/organizations/{org.id}", headers=auth(outsider))
    missing = client.get("/organizations/does-not-exist", headers=auth(outsider))

    assert existing.status_code == missing.status_code == 404
    assert existing.json() == missing.json() == {
        "error": "Organization not found or no access"
    }


def test_get_returns_members_with_user_summary(client: TestClient) -> None:
    org = create_test_org("crew")
    member = make_user("bob@example.com", "Bob")
    add_test_member(org, member, "DRIVER")

    resp = client.get(f"/organizations/{org.id}", headers=auth(member))
    assert resp.status_code == 200
    body = resp.json()["organization"]
    assert body["memberCount"] == 1
    assert body["members"][0]["role"] == "DRIVER"
    assert body["members"][0]["user"] == {
        "id": member.id,
        "name": "Bob",
        "email": "bob@example.com",
        "globalRole": "USER",
        "extensionEnabled": False,
    }


def test_list_all_is_super_admin_only(
    client: TestClient, super_admin: User, user: User
) -> None:
    older = create_test_org("older")
    newer = create_test_org("newer")
    add_test_member(newer, user, "MANAGER")

    assert client.get("/organizations", headers=auth(user)).status_code == 403

    resp = client.get("/organizations", headers=auth(super_admin))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [o["id"] for o in data] == [newer.id, older.id]
    assert data[0]["memberCount"] == 1
    assert data[1]["memberCount"] == 0


def test_list_all_for_unknown_user_is_404(client: TestClient) -> None:
    ghost = User.new(email="ghost@example.com")  # never persisted
    resp = client.get("/organizations", headers=auth(ghost))
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


def test_get_role_reports_both_axes(client: TestClient, user: User) -> None:
    resp = client.get("/organizations/role", headers=auth(user))
    assert resp.json() == {
        "globalRole": "USER",
        "organizationId": None,
        "memberRole": None,
    }

    org = create_test_org("roles")
    add_test_member(org, user, "ADMIN")
    resp = client.get("/organizations/role", headers=auth(user))
    assert resp.json() == {
        "globalRole": "USER",
        "organizationId": org.id,
        "memberRole": "ADMIN",
    }


def test_get_mine_without_membership_is_404(client: TestClient, user: User) -> None:
    resp = client.get("/organizations/me", headers=auth(user))
    assert resp.status_code == 404
    assert resp.json() == {"error": "No organization membership found"}


def test_partial_update_keeps_untouched_fields(client: TestClient) -> None:
    org = create_test_org("fleet")
    manager = make_user("m@example.com")
    add_test_member(org, manager, "MANAGER")
    asyncio.run(
        dependencies.memory_repos().orgs.update(
            org.id, {"logo": "https://cdn/logo.png", "metadata": {"tier": "gold"}}
        )
    )

    resp = client.put(
        f"/organizations/{org.id}", json={"name": "Fleet Two"}, headers=auth(manager)
    )
    assert resp.status_code == 200
    updated = resp.json()["organization"]
    assert updated["name"] == "Fleet Two"
    assert updated["slug"] == "fleet"
    assert updated["logo"] == "https://cdn/logo.png"
    assert updated["metadata"] == {"tier": "gold"}


def test_update_null_fields_are_ignored(client: TestClient) -> None:
    org = create_test_org("nulls")
    admin = make_user("a@example.com")
    add_test_member(org, admin, "ADMIN")

    resp = client.put(
        f"/organizations/{org.id}",
        json={"name": None, "slug": None},
        headers=auth(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["organization"]["slug"] == "nulls"


def test_update_slug_rules(client: TestClient) -> None:
    org = create_test_org("alpha")
    create_test_org("beta")
    admin = make_user("a@example.com")
    add_test_member(org, admin, "ADMIN")

    bad = client.put(
        f"/organizations/{org.id}", json={"slug": "Not A Slug"}, headers=auth(admin)
    )
    assert bad.status_code == 400

    taken = client.put(
        f"/organizations/{org.id}", json={"slug": "beta"}, headers=auth(admin)
    )
    assert taken.status_code == 409
    assert taken.json() == {"error": "Slug already in use"}

    ok = client.put(
        f"/organizations/{org.id}", json={"slug": "alpha-2"}, headers=auth(admin)
    )
    assert ok.status_code == 200
    assert ok.json()["organization"]["slug"] == "alpha-2"


def test_update_by_owner_is_forbidden(client: TestClient, user: User) -> None:
    org = create_test_org("owned")
    add_test_member(org, user, "owner")

    resp = client.put(
        f"/organizations/{org.id}", json={"name": "Renamed"}, headers=auth(user)
    )
    assert resp.status_code == 403
    assert resp.json() == {"error": "Access denied: insufficient permissions"}


def test_update_missing_org_as_super_admin_is_404(
    client: TestClient, super_admin: User
) -> None:
    resp = client.put(
        "/organizations/nope", json={"name": "X"}, headers=auth(super_admin)
    )
    assert resp.status_code == 404


def test_delete_requires_super_admin_and_removes_memberships(
    client: TestClient, super_admin: User
) -> None:
    org = create_test_org("doomed")
    manager = make_user("m@example.com")
    add_test_member(org, manager, "MANAGER")

    denied = client.delete(f"/organizations/{org.id}", headers=auth(manager))
    assert denied.status_code == 403
    assert denied.json() == {"error": "Insufficient permissions"}

    assert (
        client.delete(f"/organizations/{org.id}", headers=auth(super_admin)).status_code
        == 200
    )
    repos = dependencies.memory_repos()
    assert asyncio.run(repos.members.first_for_user(manager.id)) is None

    again = client.delete(f"/organizations/{org.id}", headers=auth(super_admin))
    assert again.status_code == 404


def test_delete_drops_the_organizations_subscriptions(
    client: TestClient, super_admin: User
) -> None:
    org = create_test_org("billed")
    plan = create_test_plan("Pro")
    asyncio.run(
        dependencies.memory_repos().subscriptions.add(
            CompanySubscription.new(organization_id=org.id, plan_id=plan.id)
        )
    )

    resp = client.delete(f"/organizations/{org.id}", headers=auth(super_admin))
    assert resp.status_code == 200

    listed = client.get("/plans", headers=auth(super_admin)).json()["plans"]
    assert [p["activeSubscribers"] for p in listed] == [0]
    subs = client.get("/subscriptions", headers=auth(super_admin)).json()
    assert subs == {"subscriptions": []}
    assert client.delete(f"/plans/{plan.id}", headers=auth(super_admin)).status_code == 204
