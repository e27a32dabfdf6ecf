"""split extension_enabled out of email_verified

Revision ID: 8c2f4e7a1b90
Revises: 3b7e1c9d2a41
Create Date: 2026-10-19 00:10:00.000000

Existing deployments used users.email_verified as the "extension
enabled" switch.  The new column starts from that value; from here on
the two flags change independently.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8c2f4e7a1b90"
down_revision: str | Sequence[str] | None = "3b7e1c9d2a41"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column(
            "extension_enabled",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
    )
    op.execute("UPDATE users SET extension_enabled = email_verified")


def downgrade() -> None:
    op.drop_column("users", "extension_enabled")
