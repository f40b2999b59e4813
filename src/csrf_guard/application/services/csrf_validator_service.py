"""Application service validating double-submit CSRF token pairs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from csrf_guard.application.ports.csrf_token_repository_port import CsrfTokenRepositoryPort
from csrf_guard.domain.csrf.token_codec import CsrfTokenCodec
from csrf_guard.domain.csrf.validation_outcome import CsrfValidationOutcome

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("csrf_guard.security")


@dataclass(frozen=True)
class CsrfValidationResult:
    """CSRF validation result model."""

    outcome: CsrfValidationOutcome
    token_id: UUID | None = None

    @property
    def is_valid(self) -> bool:
        return self.outcome is CsrfValidationOutcome.VALID


class CsrfValidatorService:
    """Check a cookie/header token pair against the store and consume it once."""

    def __init__(
        self,
        *,
        csrf_tokens: CsrfTokenRepositoryPort,
        codec: CsrfTokenCodec,
    ) -> None:
        self._csrf_tokens = csrf_tokens
        self._codec = codec

    async def validate(
        self,
        *,
        user_id: UUID,
        cookie_token: str | None,
        header_token: str | None,
        client_ip: str | None = None,
    ) -> CsrfValidationResult:
        """Validate one request's token pair for the authenticated user.

        Every rejection short-circuits before touching the store where possible.
        Failing to mark a genuine token as used is logged and does not reject
        the request.
        """

        if not cookie_token:
            return self._reject(user_id, CsrfValidationOutcome.COOKIE_MISSING)
        if not header_token:
            return self._reject(user_id, CsrfValidationOutcome.TOKEN_MISSING)
        if not self._codec.matches_cookie(header_token=header_token, cookie_token=cookie_token):
            return self._reject(user_id, CsrfValidationOutcome.TOKEN_MISMATCH)

        token_hash = self._codec.hash_secret(cookie_token)
        record = await self._csrf_tokens.get_unexpired_by_hash(
            user_id=user_id,
            token_hash=token_hash,
        )
        if record is None:
            return self._reject(user_id, CsrfValidationOutcome.TOKEN_INVALID)
        if record.used:
            return self._reject(user_id, CsrfValidationOutcome.TOKEN_REPLAYED, token_id=record.id)

        if record.ip_address and client_ip and record.ip_address != client_ip:
            logger.warning(
                "csrf_token_ip_changed user_id=%s token_id=%s issued_ip=%s request_ip=%s",
                user_id,
                record.id,
                record.ip_address,
                client_ip,
            )

        try:
            consumed = await self._csrf_tokens.mark_used(token_id=record.id)
        except Exception as error:  # noqa: BLE001
            security_logger.warning(
                "csrf_token_consume_failed user_id=%s token_id=%s error=%s",
                user_id,
                record.id,
                error,
            )
        else:
            if not consumed:
                # A concurrent request consumed the same token between lookup and update.
                return self._reject(
                    user_id,
                    CsrfValidationOutcome.TOKEN_REPLAYED,
                    token_id=record.id,
                )

        logger.info("csrf_token_valid user_id=%s token_id=%s", user_id, record.id)
        return CsrfValidationResult(outcome=CsrfValidationOutcome.VALID, token_id=record.id)

    def _reject(
        self,
        user_id: UUID,
        outcome: CsrfValidationOutcome,
        *,
        token_id: UUID | None = None,
    ) -> CsrfValidationResult:
        if outcome.is_security_event:
            security_logger.warning(
                "csrf_token_replayed user_id=%s token_id=%s",
                user_id,
                token_id,
            )
        else:
            logger.info("csrf_token_rejected user_id=%s reason=%s", user_id, outcome.value)
        return CsrfValidationResult(outcome=outcome, token_id=token_id)
