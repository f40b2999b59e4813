"""Port for resolving bearer credentials to authenticated principals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


class IdentityProviderError(RuntimeError):
    """Raised when the identity provider cannot be reached or answers unexpectedly."""


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Caller identity resolved by the external identity provider."""

    user_id: UUID
    email: str | None = None


class IdentityProviderPort(Protocol):
    """External identity provider contract."""

    async def get_user(self, *, access_token: str) -> AuthenticatedPrincipal | None:
        """Return principal for a valid access token, or None when rejected."""
