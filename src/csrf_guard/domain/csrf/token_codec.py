"""Double-submit CSRF token generation, splitting and hashing."""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable
from dataclasses import dataclass

SECRET_BYTES = 32
SALT_LENGTH = 16
HEADER_TOKEN_SEPARATOR = "."
# 64 hex chars for the cookie secret, one separator, at least one salt char.
MIN_HEADER_TOKEN_LENGTH = SECRET_BYTES * 2 + 1


@dataclass(frozen=True)
class CsrfTokenPair:
    """Cookie and header halves of one issued double-submit token."""

    cookie_token: str
    header_token: str


def generate_secret() -> str:
    """Return 32 cryptographically secure random bytes, hex-encoded."""

    return secrets.token_hex(SECRET_BYTES)


class CsrfTokenCodec:
    """Derive double-submit token pairs and one-way storage hashes."""

    def __init__(
        self,
        *,
        secret_factory: Callable[[], str] | None = None,
        salt_length: int = SALT_LENGTH,
    ) -> None:
        self._secret_factory = secret_factory or generate_secret
        self._salt_length = salt_length

    def generate_secret(self) -> str:
        return self._secret_factory()

    def derive_pair(self) -> CsrfTokenPair:
        """Create a cookie secret and a header token embedding it as prefix."""

        cookie_token = self.generate_secret()
        salt = self.generate_secret()[: self._salt_length]
        return CsrfTokenPair(
            cookie_token=cookie_token,
            header_token=f"{cookie_token}{HEADER_TOKEN_SEPARATOR}{salt}",
        )

    def hash_secret(self, secret: str) -> str:
        """Return deterministic SHA-256 hex digest used for storage and lookup."""

        return hashlib.sha256(secret.encode("utf-8")).hexdigest()

    def matches_cookie(self, *, header_token: str, cookie_token: str) -> bool:
        """Return whether a well-formed header token embeds the cookie token."""

        if HEADER_TOKEN_SEPARATOR not in header_token:
            return False
        if len(header_token) < MIN_HEADER_TOKEN_LENGTH:
            return False

        base = header_token.split(HEADER_TOKEN_SEPARATOR, 1)[0]
        return secrets.compare_digest(base.encode("utf-8"), cookie_token.encode("utf-8"))
