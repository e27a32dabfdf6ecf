from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient

from org_service.models.user import User
from org_service.services import token_service
from tests.conftest import auth, mint_token


def test_me_returns_session_user(client: TestClient, user: User) -> None:
    resp = client.get("/me", headers=auth(user))
    assert resp.status_code == 200
    assert resp.json() == {
        "id": user.id,
        "email": "alice@example.com",
        "name": "Alice",
        "emailVerified": False,
    }


def test_me_accepts_session_cookie(client: TestClient, user: User) -> None:
    resp = client.get("/me", headers={"Cookie": f"session={mint_token(user)}"})
    assert resp.status_code == 200
    assert resp.json()["id"] == user.id


def test_me_without_session_is_401(client: TestClient) -> None:
    resp = client.get("/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}


def test_expired_session_is_rejected(client: TestClient, user: User) -> None:
    token = token_service.create_session_token(
        sub=user.id, email=user.email, ttl=timedelta(seconds=-30)
    )
    resp = client.get("/organizations/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired session"}


def test_garbage_bearer_is_rejected(client: TestClient) -> None:
    resp = client.get("/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


def test_invalid_json_body_is_400_with_details(client: TestClient, user: User) -> None:
    resp = client.post(
        "/organizations",
        content=b"{not json",
        headers={**auth(user), "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"
    assert resp.json()["details"]
