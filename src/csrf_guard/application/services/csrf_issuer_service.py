"""Application service issuing double-submit CSRF token pairs."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID

from csrf_guard.application.ports.csrf_token_repository_port import (
    CsrfTokenCreateInput,
    CsrfTokenRecord,
    CsrfTokenRepositoryPort,
    DuplicateActiveCsrfTokenError,
)
from csrf_guard.application.services.csrf_cleanup_service import CsrfCleanupService
from csrf_guard.domain.csrf.token_codec import CsrfTokenCodec

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(hours=24)
_MAX_ROTATE_ATTEMPTS = 2


class CsrfTokenIssueError(RuntimeError):
    """Raised when a token cannot be persisted after the single conflict retry."""


@dataclass(frozen=True)
class IssuedCsrfToken:
    """Issued token pair returned to the HTTP layer.

    `cookie_token` goes into the HTTP-only cookie; `header_token` is returned
    in the response body.
    """

    token_id: UUID
    cookie_token: str
    header_token: str
    expires_at: datetime


class CsrfIssuerService:
    """Issue one token pair per call while keeping one active token per user."""

    def __init__(
        self,
        *,
        csrf_tokens: CsrfTokenRepositoryPort,
        codec: CsrfTokenCodec,
        cleanup: CsrfCleanupService | None = None,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._csrf_tokens = csrf_tokens
        self._codec = codec
        self._cleanup = cleanup or CsrfCleanupService(csrf_tokens=csrf_tokens)
        self._token_ttl = token_ttl
        self._now = now or (lambda: datetime.now(tz=UTC))

    @property
    def token_ttl(self) -> timedelta:
        return self._token_ttl

    async def issue(
        self,
        *,
        user_id: UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> IssuedCsrfToken:
        """Sweep dead tokens, then persist and return a fresh token pair."""

        await self._cleanup.sweep_user(user_id=user_id)

        pair = self._codec.derive_pair()
        expires_at = self._now() + self._token_ttl
        payload = CsrfTokenCreateInput(
            user_id=user_id,
            token_hash=self._codec.hash_secret(pair.cookie_token),
            expires_at=expires_at,
            user_agent=user_agent,
            ip_address=ip_address,
        )

        record = await self._rotate_with_retry(payload)
        logger.info(
            "csrf_token_issued user_id=%s token_id=%s expires_at=%s",
            user_id,
            record.id,
            expires_at.isoformat(),
        )
        return IssuedCsrfToken(
            token_id=record.id,
            cookie_token=pair.cookie_token,
            header_token=pair.header_token,
            expires_at=expires_at,
        )

    async def _rotate_with_retry(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Rotate the active token, retrying exactly once on a concurrent-issue conflict."""

        for attempt in range(1, _MAX_ROTATE_ATTEMPTS + 1):
            try:
                return await self._rotate(payload)
            except DuplicateActiveCsrfTokenError as error:
                logger.warning(
                    "csrf_token_issue_conflict user_id=%s attempt=%s",
                    payload.user_id,
                    attempt,
                )
                if attempt == _MAX_ROTATE_ATTEMPTS:
                    raise CsrfTokenIssueError(
                        "concurrent csrf token issuance conflict persisted after retry"
                    ) from error

        raise AssertionError("unreachable")  # pragma: no cover

    async def _rotate(self, payload: CsrfTokenCreateInput) -> CsrfTokenRecord:
        """Persist payload, dropping optional `ip_address` if the store rejects it."""

        try:
            return await self._csrf_tokens.rotate_active_token(payload)
        except DuplicateActiveCsrfTokenError:
            raise
        except Exception as error:  # noqa: BLE001
            if payload.ip_address is None:
                raise
            logger.warning(
                "csrf_token_metadata_rejected user_id=%s error=%s",
                payload.user_id,
                error,
            )
            return await self._csrf_tokens.rotate_active_token(
                replace(payload, ip_address=None)
            )
