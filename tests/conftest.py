from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from org_service.api import dependencies
from org_service.main import app
from org_service.models.auth_context import AuthContext
from org_service.models.organization import Membership, Organization
from org_service.models.plan import Plan
from org_service.models.user import GlobalRole, User
from org_service.repos.registry import Repos
from org_service.services import token_service

# Ensure repo root is on sys.path so `import org_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_repos() -> Repos:
    """Fresh in-memory repositories for every test."""
    return dependencies.reset_memory_repos()


@pytest.fixture
def repos(reset_repos: Repos) -> Repos:
    return reset_repos


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------


def mint_token(user: User) -> str:
    """Create a valid ES256 session JWT for the user."""
    return token_service.create_session_token(
        sub=user.id,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified,
    )


def auth(user: User | None) -> dict[str, str]:
    if user is None:
        return {}
    return {"Authorization": f"Bearer {mint_token(user)}"}


def actor_for(user: User) -> AuthContext:
    return AuthContext(user_id=user.id, email=user.email, name=user.name)


def make_user(
    email: str,
    name: str = "",
    role: GlobalRole = GlobalRole.USER,
) -> User:
    """Create and persist a user in the current in-memory repos."""
    user = User.new(email=email, name=name, global_role=role)
    asyncio.run(dependencies.memory_repos().users.add(user))
    return user


@pytest.fixture
def super_admin() -> User:
    return make_user("root@example.com", "Root", GlobalRole.SUPER_ADMIN)


@pytest.fixture
def user() -> User:
    return make_user("alice@example.com", "Alice")


# ---------------------------------------------------------------------------
# Org / plan helpers
# ---------------------------------------------------------------------------


def create_test_org(slug: str = "test-org") -> Organization:
    """Create and persist an org in the in-memory repo."""
    org = Organization.new(name=slug.replace("-", " ").title(), slug=slug)
    asyncio.run(dependencies.memory_repos().orgs.add(org))
    return org


def add_test_member(org: Organization, user: User, role: str = "USER") -> Membership:
    """Add a membership to the in-memory repo."""
    m = Membership.new(organization_id=org.id, user_id=user.id, role=role)
    asyncio.run(dependencies.memory_repos().members.add(m))
    return m


def create_test_plan(
    name: str = "Pro", price_per_seat: float = 10.0, features: list[str] | None = None
) -> Plan:
    plan = Plan.new(name=name, price_per_seat=price_per_seat, features=features or [])
    asyncio.run(dependencies.memory_repos().plans.add(plan))
    return plan
