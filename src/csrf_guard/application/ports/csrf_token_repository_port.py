"""Port for user-scoped CSRF token record persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


class DuplicateActiveCsrfTokenError(ValueError):
    """Raised when an insert would leave a user with two active tokens."""


@dataclass(frozen=True)
class CsrfTokenCreateInput:
    """Input payload for inserting one CSRF token record."""

    user_id: UUID
    token_hash: str
    expires_at: datetime
    user_agent: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class CsrfTokenRecord:
    """Persisted CSRF token model. Only the hash of the cookie secret is stored."""

    id: UUID
    user_id: UUID
    token_hash: str
    created_at: datetime
    expires_at: datetime
    used: bool
    used_at: datetime | None
    user_agent: str | None
    ip_address: str | None


class CsrfTokenRepositoryPort(Protocol):
    """CSRF token persistence contract."""

    async def supersede_active_tokens_for_user(self, *, user_id: UUID) -> int:
        """Mark every unused token of one user as used and return affected count."""

    async def create_token(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Insert one token record or raise `DuplicateActiveCsrfTokenError`."""

    async def rotate_active_token(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Supersede the user's unused tokens and insert a new one atomically."""

    async def get_unexpired_by_hash(
        self,
        *,
        user_id: UUID,
        token_hash: str,
    ) -> CsrfTokenRecord | None:
        """Return the user's unexpired token by hash, used or not."""

    async def mark_used(self, *, token_id: UUID) -> bool:
        """Mark one unused token as used and return whether a row changed."""

    async def delete_dead_tokens_for_user(self, *, user_id: UUID) -> int:
        """Delete one user's used or expired tokens and return deleted count."""

    async def delete_dead_tokens(self) -> int:
        """Delete used or expired tokens across all users and return deleted count."""
