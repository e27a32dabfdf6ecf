from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from org_service.models.user import User


def _now() -> datetime:
    return datetime.now(UTC)


class MemberRole:
    """Organization-scoped role vocabulary.

    ``owner`` is lowercase for historical reasons: it is the role the
    authentication provider assigns to an organization's creator.
    """

    OWNER = "owner"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    USER = "USER"
    DISPATCHER = "DISPATCHER"
    DRIVER = "DRIVER"

    ALL = frozenset({OWNER, MANAGER, ADMIN, USER, DISPATCHER, DRIVER})


@dataclass(frozen=True, slots=True)
class Organization:
    id: str
    name: str
    slug: str
    logo: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(
        *,
        name: str,
        slug: str,
        logo: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Organization:
        return Organization(
            id=str(uuid4()),
            name=name,
            slug=slug,
            logo=logo,
            metadata=dict(metadata or {}),
        )


@dataclass(frozen=True, slots=True)
class Membership:
    id: str
    organization_id: str
    user_id: str
    role: str
    created_at: datetime = field(default_factory=_now)

    @staticmethod
    def new(*, organization_id: str, user_id: str, role: str) -> Membership:
        return Membership(
            id=str(uuid4()),
            organization_id=organization_id,
            user_id=user_id,
            role=role,
        )


@dataclass(frozen=True, slots=True)
class MemberWithUser:
    """A membership joined with its user row, as returned to clients."""

    membership: Membership
    user: User | None
