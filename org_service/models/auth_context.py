from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Verified identity of the caller for one request.

    Produced by the identity dependency from the authentication
    provider's session and passed explicitly into every service call.
    It carries only what the session proves; the global role and
    memberships are looked up by the role authority when a gate needs
    them, so role changes apply on the next request.
    """

    user_id: str
    email: str
    name: str = ""
    email_verified: bool = False
