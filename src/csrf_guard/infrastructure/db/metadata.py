"""SQLAlchemy metadata definitions for CSRF token tables."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

metadata = sa.MetaData()
ip_address_type = sa.Text().with_variant(postgresql.INET(), "postgresql")

csrf_tokens = sa.Table(
    "csrf_tokens",
    metadata,
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
    sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("ip_address", ip_address_type, nullable=True),
    sa.Column("user_agent", sa.Text(), nullable=True),
)

# One unused token per user. Expiry cannot be part of an index predicate, so
# issuance supersedes expired-but-unused rows as well.
sa.Index(
    "uq_csrf_tokens_user_id_active",
    csrf_tokens.c.user_id,
    unique=True,
    postgresql_where=sa.text("NOT used"),
    sqlite_where=sa.text("NOT used"),
)
sa.Index(
    "ix_csrf_tokens_user_id_token_hash",
    csrf_tokens.c.user_id,
    csrf_tokens.c.token_hash,
)
sa.Index("ix_csrf_tokens_expires_at", csrf_tokens.c.expires_at)
sa.Index("ix_csrf_tokens_ip_address", csrf_tokens.c.ip_address)
sa.Index(
    "ix_csrf_tokens_used_at",
    csrf_tokens.c.used_at,
    postgresql_where=sa.text("used"),
    sqlite_where=sa.text("used"),
)
