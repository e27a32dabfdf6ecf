"""Bundle of repositories handed to the services.

The services never construct repositories themselves; the API layer
picks the in-memory set (no DATABASE_URL) or builds a SQL-backed set on
the request's session, and passes the bundle down.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from org_service.repos.org_membership_repo import (
    InMemoryOrgMembershipRepo,
    OrgMembershipRepo,
)
from org_service.repos.org_repo import InMemoryOrgRepo, OrgRepo
from org_service.repos.pg_org_membership_repo import PgOrgMembershipRepo
from org_service.repos.pg_org_repo import PgOrgRepo
from org_service.repos.pg_plan_repo import PgPlanRepo
from org_service.repos.pg_subscription_repo import PgSubscriptionRepo
from org_service.repos.pg_user_repo import PgUserRepo
from org_service.repos.plan_repo import InMemoryPlanRepo, PlanRepo
from org_service.repos.subscription_repo import (
    InMemorySubscriptionRepo,
    SubscriptionRepo,
)
from org_service.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(frozen=True)
class Repos:
    users: UserRepo
    orgs: OrgRepo
    members: OrgMembershipRepo
    plans: PlanRepo
    subscriptions: SubscriptionRepo


def in_memory_repos() -> Repos:
    return Repos(
        users=InMemoryUserRepo(),
        orgs=InMemoryOrgRepo(),
        members=InMemoryOrgMembershipRepo(),
        plans=InMemoryPlanRepo(),
        subscriptions=InMemorySubscriptionRepo(),
    )


def sql_repos(session: AsyncSession) -> Repos:
    return Repos(
        users=PgUserRepo(session),
        orgs=PgOrgRepo(session),
        members=PgOrgMembershipRepo(session),
        plans=PgPlanRepo(session),
        subscriptions=PgSubscriptionRepo(session),
    )
