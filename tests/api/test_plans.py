from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from org_service.api import dependencies
from org_service.models.plan import CompanySubscription, SubscriptionStatus
from org_service.models.user import User
from tests.conftest import auth, create_test_org, create_test_plan


def test_create_plan_trims_name(client: TestClient, super_admin: User) -> None:
    resp = client.post(
        "/plans",
        json={"name": "  Pro  ", "pricePerSeat": 12.5, "features": ["gps", "eld"]},
        headers=auth(super_admin),
    )
    assert resp.status_code == 201
    plan = resp.json()["plan"]
    assert plan["name"] == "Pro"
    assert plan["pricePerSeat"] == 12.5
    assert plan["features"] == ["gps", "eld"]


def test_create_plan_is_super_admin_only(client: TestClient, user: User) -> None:
    resp = client.post(
        "/plans",
        json={"name": "Pro", "pricePerSeat": 1, "features": []},
        headers=auth(user),
    )
    assert resp.status_code == 403


def test_create_plan_validation(client: TestClient, super_admin: User) -> None:
    bad_bodies = [
        {"pricePerSeat": 1, "features": []},
        {"name": "X", "pricePerSeat": 1},
        {"name": "X", "pricePerSeat": 1, "features": None},
        {"name": "   ", "pricePerSeat": 1, "features": []},
        {"name": "X", "pricePerSeat": -1, "features": []},
        {"name": "X", "pricePerSeat": True, "features": []},
        {"name": "X", "pricePerSeat": "10", "features": []},
        {"name": "X", "pricePerSeat": 1, "features": "gps"},
        {"name": "X", "pricePerSeat": 1, "features": ["gps", 3]},
    ]
    for body in bad_bodies:
        resp = client.post("/plans", json=body, headers=auth(super_admin))
        assert resp.status_code == 400, body


def test_duplicate_plan_name_conflicts(client: TestClient, super_admin: User) -> None:
    create_test_plan("Pro")
    resp = client.post(
        "/plans",
        json={"name": " Pro ", "pricePerSeat": 3, "features": []},
        headers=auth(super_admin),
    )
    assert resp.status_code == 409
    assert resp.json() == {"error": "Plan already exists"}


def test_list_and_get_count_active_subscribers(
    client: TestClient, user: User
) -> None:
    pro = create_test_plan("Pro")
    basic = create_test_plan("Basic", 5)
    subs = dependencies.memory_repos().subscriptions
    asyncio.run(
        subs.add(
            CompanySubscription.new(
                organization_id=create_test_org("a").id, plan_id=pro.id
            )
        )
    )
    asyncio.run(
        subs.add(
            CompanySubscription(
                id="old",
                organization_id=create_test_org("b").id,
                plan_id=pro.id,
                status=SubscriptionStatus.CANCELLED,
            )
        )
    )

    listed = client.get("/plans", headers=auth(user))
    assert listed.status_code == 200
    counts = {p["name"]: p["activeSubscribers"] for p in listed.json()["plans"]}
    assert counts == {"Pro": 1, "Basic": 0}

    one = client.get(f"/plans/{basic.id}", headers=auth(user))
    assert one.status_code == 200
    assert one.json()["plan"]["activeSubscribers"] == 0


def test_get_missing_plan(client: TestClient, user: User) -> None:
    resp = client.get("/plans/nope", headers=auth(user))
    assert resp.status_code == 404
    assert resp.json() == {"error": "Plan not found"}


def test_plans_require_authentication(client: TestClient) -> None:
    assert client.get("/plans").status_code == 401


def test_update_plan_partial(client: TestClient, super_admin: User) -> None:
    plan = create_test_plan("Pro", 10, ["gps"])
    resp = client.patch(
        f"/plans/{plan.id}", json={"pricePerSeat": 15}, headers=auth(super_admin)
    )
    assert resp.status_code == 200
    body = resp.json()["plan"]
    assert body["pricePerSeat"] == 15
    assert body["name"] == "Pro"
    assert body["features"] == ["gps"]


def test_update_plan_errors(client: TestClient, super_admin: User) -> None:
    plan = create_test_plan("Pro")
    create_test_plan("Basic")

    assert (
        client.patch("/plans/nope", json={"name": "X"}, headers=auth(super_admin))
        .status_code
        == 404
    )
    assert (
        client.patch(
            f"/plans/{plan.id}", json={"pricePerSeat": -3}, headers=auth(super_admin)
        ).status_code
        == 400
    )
    rename = client.patch(
        f"/plans/{plan.id}", json={"name": "Basic"}, headers=auth(super_admin)
    )
    assert rename.status_code == 409


def test_delete_plan_is_restricted_when_referenced(
    client: TestClient, super_admin: User
) -> None:
    used = create_test_plan("Used")
    unused = create_test_plan("Unused")
    asyncio.run(
        dependencies.memory_repos().subscriptions.add(
            CompanySubscription(
                id="s1",
                organization_id=create_test_org("a").id,
                plan_id=used.id,
                status=SubscriptionStatus.CANCELLED,
            )
        )
    )

    blocked = client.delete(f"/plans/{used.id}", headers=auth(super_admin))
    assert blocked.status_code == 409
    assert blocked.json() == {"error": "Plan has subscriptions and cannot be deleted"}

    ok = client.delete(f"/plans/{unused.id}", headers=auth(super_admin))
    assert ok.status_code == 204
    assert client.get(f"/plans/{unused.id}", headers=auth(super_admin)).status_code == 404
