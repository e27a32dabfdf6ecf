from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from org_service.api.dependencies import get_session_provider
from org_service.api.schemas import MeOut
from org_service.services.errors import UnauthenticatedError
from org_service.services.identity import SessionProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


@router.get("/me", response_model=MeOut)
async def get_me(
    request: Request,
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
) -> MeOut:
    """The session's user as the authentication provider sees it."""
    session = provider.get_session(request.headers)
    if session is None:
        raise UnauthenticatedError("Not authenticated")
    user = session.user
    return MeOut(
        id=user.id,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified,
    )
