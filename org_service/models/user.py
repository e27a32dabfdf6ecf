from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


class GlobalRole(str, Enum):
    """User-wide permission tier, independent of any organization."""

    USER = "USER"
    SUPER_ADMIN = "SUPER_ADMIN"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    name: str = ""
    email_verified: bool = False
    # Whether the browser extension is switched on for this user.  Older
    # rows stored this in email_verified; the two are separate now.
    extension_enabled: bool = False
    global_role: GlobalRole = GlobalRole.USER
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @staticmethod
    def new(
        *,
        email: str,
        name: str = "",
        global_role: GlobalRole = GlobalRole.USER,
        email_verified: bool = False,
    ) -> User:
        return User(
            id=str(uuid4()),
            email=email.strip().lower(),
            name=name,
            email_verified=email_verified,
            global_role=global_role,
        )
