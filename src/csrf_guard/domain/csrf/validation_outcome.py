"""Closed set of outcomes produced by double-submit CSRF validation."""

from __future__ import annotations

from enum import StrEnum


class CsrfValidationOutcome(StrEnum):
    """Supported CSRF validation outcomes.

    Values double as the machine-readable reason strings returned to clients.
    """

    VALID = "valid"
    COOKIE_MISSING = "CookieMissing"
    TOKEN_MISSING = "TokenMissing"
    TOKEN_MISMATCH = "TokenMismatch"
    TOKEN_INVALID = "TokenInvalid"
    TOKEN_REPLAYED = "TokenReplayed"

    @property
    def is_security_event(self) -> bool:
        """Return whether this outcome indicates reuse of a consumed token."""

        return self is CsrfValidationOutcome.TOKEN_REPLAYED
