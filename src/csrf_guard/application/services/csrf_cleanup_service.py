"""Lazy removal of used and expired CSRF token records."""

from __future__ import annotations

import logging
from uuid import UUID

from csrf_guard.application.ports.csrf_token_repository_port import CsrfTokenRepositoryPort

logger = logging.getLogger(__name__)


class CsrfCleanupService:
    """Delete dead token records per user at issuance time, or globally on demand."""

    def __init__(self, *, csrf_tokens: CsrfTokenRepositoryPort) -> None:
        self._csrf_tokens = csrf_tokens

    async def sweep_user(self, *, user_id: UUID) -> int:
        """Delete one user's dead tokens; failures are logged and reported as zero."""

        try:
            deleted = await self._csrf_tokens.delete_dead_tokens_for_user(user_id=user_id)
        except Exception as error:  # noqa: BLE001
            logger.warning("csrf_sweep_failed user_id=%s error=%s", user_id, error)
            return 0

        if deleted:
            logger.info("csrf_sweep_ok user_id=%s deleted=%s", user_id, deleted)
        return deleted

    async def sweep_all(self) -> int:
        """Delete dead tokens for every user and return deleted count."""

        deleted = await self._csrf_tokens.delete_dead_tokens()
        logger.info("csrf_sweep_all_ok deleted=%s", deleted)
        return deleted
