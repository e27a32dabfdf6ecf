"""Session token verification (ES256).

Sessions are issued by the authentication provider; this service only
verifies them.  The provider's public key is read from
SESSION_PUBLIC_KEY.  When it is not configured (dev/test) an ephemeral
key pair is generated on import and ``create_session_token`` can mint
tokens against it, which is how the test-suite logs users in.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from org_service.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "auth-provider"
SESSION_AUDIENCE = "org-service-session"
SESSION_TTL_MIN = 60 * 24

_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.session_public_key:
    _private_key = None
    _public_key = load_pem_public_key(SETTINGS.session_public_key.encode())
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_session_token(
    *,
    sub: str,
    email: str,
    name: str = "",
    email_verified: bool = False,
    ttl: timedelta = timedelta(minutes=SESSION_TTL_MIN),
) -> str:
    """Sign a session JWT with the ephemeral dev key."""
    if _private_key is None:
        raise RuntimeError(
            "session tokens are issued by the authentication provider "
            "when SESSION_PUBLIC_KEY is configured"
        )
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "email": email,
        "name": name,
        "email_verified": email_verified,
        "iss": ISSUER,
        "aud": SESSION_AUDIENCE,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """Verify signature and claims and return the payload.

    The algorithm is pinned to ES256.  Raises jwt.ExpiredSignatureError
    or jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=SESSION_AUDIENCE,
        options={"require": ["sub", "email", "exp", "iat"]},
    )
