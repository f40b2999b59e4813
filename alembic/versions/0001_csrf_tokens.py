"""Create CSRF token table with one-active-token-per-user index."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_csrf_tokens"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "csrf_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("token_hash", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index(
        "uq_csrf_tokens_user_id_active",
        "csrf_tokens",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("NOT used"),
        sqlite_where=sa.text("NOT used"),
    )
    op.create_index(
        "ix_csrf_tokens_user_id_token_hash",
        "csrf_tokens",
        ["user_id", "token_hash"],
        unique=False,
    )
    op.create_index("ix_csrf_tokens_expires_at", "csrf_tokens", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_csrf_tokens_expires_at", table_name="csrf_tokens")
    op.drop_index("ix_csrf_tokens_user_id_token_hash", table_name="csrf_tokens")
    op.drop_index("uq_csrf_tokens_user_id_active", table_name="csrf_tokens")
    op.drop_table("csrf_tokens")
