from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from org_service.core.config import SETTINGS
from org_service.db import engine as db_engine
from org_service.middleware.request_context import org_id_var, user_id_var
from org_service.models.auth_context import AuthContext
from org_service.repos.registry import Repos, in_memory_repos, sql_repos
from org_service.services.errors import UnauthenticatedError
from org_service.services.identity import SessionProvider, TokenSessionProvider
from org_service.services.org_provider import (
    LocalOrganizationProvider,
    OrganizationProvider,
)

logger = logging.getLogger(__name__)

# Used when DATABASE_URL is unset; lives as long as the process.
_memory_repos = in_memory_repos()
_session_provider: SessionProvider = TokenSessionProvider()


def memory_repos() -> Repos:
    return _memory_repos


def reset_memory_repos() -> Repos:
    """Start over with empty in-memory repositories (tests)."""
    global _memory_repos
    _memory_repos = in_memory_repos()
    return _memory_repos


async def get_repos() -> AsyncGenerator[Repos, None]:
    """Repositories for one request.

    SQL-backed on a request-scoped session when a database is configured:
    the session commits after the endpoint returns and rolls back if it
    raised.
    """
    if db_engine.async_session_factory is None:
        yield _memory_repos
        return

    async with db_engine.async_session_factory() as session:
        try:
            yield sql_repos(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_provider() -> SessionProvider:
    return _session_provider


def get_org_provider(
    repos: Annotated[Repos, Depends(get_repos)],
) -> OrganizationProvider:
    return LocalOrganizationProvider(repos, create_policy=SETTINGS.org_create_policy)


async def require_auth(
    request: Request,
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
) -> AuthContext:
    """Resolve the caller's session into an AuthContext, or 401.

    Used as a FastAPI dependency on every protected endpoint.
    """
    session = provider.get_session(request.headers)
    if session is None:
        logger.warning("Unauthenticated request rejected path=%s", request.url.path)
        raise UnauthenticatedError("Invalid or expired session")

    actor = session.to_auth_context()
    user_id_var.set(actor.user_id)
    logger.debug("Session resolved for user=%s", actor.user_id)
    return actor


RepoDep = Annotated[Repos, Depends(get_repos)]
ActorDep = Annotated[AuthContext, Depends(require_auth)]
OrgProviderDep = Annotated[OrganizationProvider, Depends(get_org_provider)]


async def bind_org_id(org_id: str) -> str:
    """Path ``org_id``, published to the log context."""
    org_id_var.set(org_id)
    return org_id


OrgIdDep = Annotated[str, Depends(bind_org_id)]
