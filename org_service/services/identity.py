"""Identity resolver: request credentials -> verified session.

The authentication provider is consumed through the ``SessionProvider``
protocol.  ``get_session`` must never raise: a missing, malformed,
expired or forged credential yields None and the caller answers 401.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import jwt
from starlette.requests import cookie_parser

from org_service.models.auth_context import AuthContext
from org_service.services import token_service

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


@dataclass(frozen=True, slots=True)
class SessionUser:
    id: str
    email: str
    name: str
    email_verified: bool


@dataclass(frozen=True, slots=True)
class Session:
    user: SessionUser

    def to_auth_context(self) -> AuthContext:
        return AuthContext(
            user_id=self.user.id,
            email=self.user.email,
            name=self.user.name,
            email_verified=self.user.email_verified,
        )


class SessionProvider(Protocol):
    def get_session(self, headers: Mapping[str, str]) -> Session | None: ...


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _extract_token(headers: Mapping[str, str]) -> str | None:
    auth = _header(headers, "authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    cookie_header = _header(headers, "cookie")
    if cookie_header:
        return cookie_parser(cookie_header).get(SESSION_COOKIE) or None
    return None


class TokenSessionProvider:
    """Resolve sessions from a signed session JWT.

    Accepts ``Authorization: Bearer <jwt>`` (extension and API clients)
    or the ``session`` cookie (browser clients).  The bearer header wins
    when both are present.
    """

    def get_session(self, headers: Mapping[str, str]) -> Session | None:
        try:
            token = _extract_token(headers)
        except Exception:
            logger.debug("Unreadable credential headers", exc_info=True)
            return None
        if token is None:
            return None

        try:
            claims = token_service.decode_session_token(token)
        except jwt.ExpiredSignatureError:
            logger.debug("Session token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Invalid session token: %s", e)
            return None

        sub = claims.get("sub")
        email = claims.get("email")
        if not isinstance(sub, str) or not sub or not isinstance(email, str):
            logger.debug("Session token with unusable subject rejected")
            return None

        return Session(
            user=SessionUser(
                id=sub,
                email=email,
                name=str(claims.get("name") or ""),
                email_verified=bool(claims.get("email_verified", False)),
            )
        )
