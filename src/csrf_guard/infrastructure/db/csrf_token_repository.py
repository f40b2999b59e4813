"""SQLAlchemy adapter for CSRF token persistence."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from csrf_guard.application.ports.csrf_token_repository_port import (
    CsrfTokenCreateInput,
    CsrfTokenRecord,
    CsrfTokenRepositoryPort,
    DuplicateActiveCsrfTokenError,
)
from csrf_guard.infrastructure.db.metadata import csrf_tokens


def _is_duplicate_active_token_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "uq_csrf_tokens_user_id_active" in message or "csrf_tokens.user_id" in message


class SqlAlchemyCsrfTokenRepository(CsrfTokenRepositoryPort):
    """CSRF token repository backed by SQLAlchemy async sessions."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._now = now or (lambda: datetime.now(tz=UTC))

    async def supersede_active_tokens_for_user(self, *, user_id: UUID) -> int:
        """Mark all unused tokens for one user as used."""

        async with self._session_factory() as session:
            result = cast(
                CursorResult[Any],
                await session.execute(self._supersede_statement(user_id=user_id)),
            )
            await session.commit()

        return int(result.rowcount or 0)

    async def create_token(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Insert a token hash row and return the inserted record."""

        async with self._session_factory() as session:
            try:
                result = await session.execute(self._insert_statement(payload))
                row = result.mappings().one()
                await session.commit()
            except IntegrityError as error:
                await session.rollback()
                if _is_duplicate_active_token_error(error):
                    raise DuplicateActiveCsrfTokenError(
                        "user already has an active csrf token"
                    ) from error
                raise

        return _to_csrf_token_record(row)

    async def rotate_active_token(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Supersede unused tokens and insert the new one in a single transaction."""

        async with self._session_factory() as session:
            try:
                await session.execute(self._supersede_statement(user_id=payload.user_id))
                result = await session.execute(self._insert_statement(payload))
                row = result.mappings().one()
                await session.commit()
            except IntegrityError as error:
                await session.rollback()
                if _is_duplicate_active_token_error(error):
                    raise DuplicateActiveCsrfTokenError(
                        "concurrent csrf token issuance for user"
                    ) from error
                raise

        return _to_csrf_token_record(row)

    async def get_unexpired_by_hash(
        self,
        *,
        user_id: UUID,
        token_hash: str,
    ) -> CsrfTokenRecord | None:
        """Return unexpired token for user and hash, regardless of `used`."""

        statement = (
            sa.select(*csrf_tokens.c)
            .where(
                csrf_tokens.c.user_id == user_id,
                csrf_tokens.c.token_hash == token_hash,
                csrf_tokens.c.expires_at > self._now(),
            )
            .order_by(csrf_tokens.c.created_at.desc())
            .limit(1)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().first()
        if row is None:
            return None
        return _to_csrf_token_record(row)

    async def mark_used(self, *, token_id: UUID) -> bool:
        """Flip one token from unused to used; already-used tokens are left untouched."""

        statement = (
            sa.update(csrf_tokens)
            .where(
                csrf_tokens.c.id == token_id,
                csrf_tokens.c.used.is_(False),
            )
            .values(used=True, used_at=self._now())
        )

        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(statement))
            await session.commit()

        return int(result.rowcount or 0) == 1

    async def delete_dead_tokens_for_user(self, *, user_id: UUID) -> int:
        """Delete used or expired tokens belonging to one user."""

        statement = sa.delete(csrf_tokens).where(
            csrf_tokens.c.user_id == user_id,
            self._dead_predicate(),
        )
        return await self._execute_delete(statement)

    async def delete_dead_tokens(self) -> int:
        """Delete used or expired tokens across all users."""

        return await self._execute_delete(sa.delete(csrf_tokens).where(self._dead_predicate()))

    async def _execute_delete(self, statement: sa.Delete) -> int:
        async with self._session_factory() as session:
            result = cast(CursorResult[Any], await session.execute(statement))
            await session.commit()

        return int(result.rowcount or 0)

    def _dead_predicate(self) -> sa.ColumnElement[bool]:
        return sa.or_(
            csrf_tokens.c.used.is_(True),
            csrf_tokens.c.expires_at <= self._now(),
        )

    def _supersede_statement(self, *, user_id: UUID) -> sa.Update:
        return (
            sa.update(csrf_tokens)
            .where(
                csrf_tokens.c.user_id == user_id,
                csrf_tokens.c.used.is_(False),
            )
            .values(used=True, used_at=self._now())
        )

    def _insert_statement(self, payload: CsrfTokenCreateInput) -> sa.Insert:
        return (
            sa.insert(csrf_tokens)
            .values(
                id=uuid4(),
                user_id=payload.user_id,
                token_hash=payload.token_hash,
                created_at=self._now(),
                expires_at=payload.expires_at,
                used=False,
                user_agent=payload.user_agent,
                ip_address=payload.ip_address,
            )
            .returning(*csrf_tokens.c)
        )


def _to_csrf_token_record(row: sa.RowMapping) -> CsrfTokenRecord:
    raw_id = row["id"]
    raw_user_id = row["user_id"]
    raw_ip_address = row["ip_address"]
    return CsrfTokenRecord(
        id=raw_id if isinstance(raw_id, UUID) else UUID(str(raw_id)),
        user_id=raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id)),
        token_hash=cast(str, row["token_hash"]),
        created_at=cast(datetime, row["created_at"]),
        expires_at=cast(datetime, row["expires_at"]),
        used=bool(row["used"]),
        used_at=cast(datetime | None, row["used_at"]),
        user_agent=cast(str | None, row["user_agent"]),
        ip_address=None if raw_ip_address is None else str(raw_ip_address),
    )
