"""Add consumption timestamp and forensic request metadata to CSRF tokens."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_csrf_token_forensics"
down_revision = "0001_csrf_tokens"
branch_labels = None
depends_on = None

ip_address_type = sa.Text().with_variant(postgresql.INET(), "postgresql")


def upgrade() -> None:
    """Add used_at, ip_address and user_agent columns plus lookup indexes."""

    op.add_column(
        "csrf_tokens",
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.add_column("csrf_tokens", sa.Column("ip_address", ip_address_type, nullable=True))
    op.add_column("csrf_tokens", sa.Column("user_agent", sa.Text(), nullable=True))
    op.create_index(
        "ix_csrf_tokens_used_at",
        "csrf_tokens",
        ["used_at"],
        unique=False,
        postgresql_where=sa.text("used"),
        sqlite_where=sa.text("used"),
    )
    op.create_index("ix_csrf_tokens_ip_address", "csrf_tokens", ["ip_address"], unique=False)


def downgrade() -> None:
    """Drop forensic columns and their indexes."""

    op.drop_index("ix_csrf_tokens_ip_address", table_name="csrf_tokens")
    op.drop_index("ix_csrf_tokens_used_at", table_name="csrf_tokens")
    op.drop_column("csrf_tokens", "user_agent")
    op.drop_column("csrf_tokens", "ip_address")
    op.drop_column("csrf_tokens", "used_at")
