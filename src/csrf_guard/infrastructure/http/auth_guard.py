"""Auth header parsing and caller resolution for CSRF endpoints."""

from __future__ import annotations

from csrf_guard.application.ports.identity_provider_port import (
    AuthenticatedPrincipal,
    IdentityProviderPort,
)


class MissingAuthTokenError(PermissionError):
    """Raised when a bearer token is required but not provided."""


class InvalidAuthTokenError(PermissionError):
    """Raised when bearer token header is malformed or rejected by the provider."""


def extract_bearer_token(authorization_header: str | None) -> str:
    """Extract access token from standard `Authorization: Bearer <token>` header."""

    if authorization_header is None or not authorization_header.strip():
        raise MissingAuthTokenError("missing bearer token")

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise InvalidAuthTokenError("invalid bearer token header")

    return parts[1]


class CsrfAuthGuard:
    """Resolve the authenticated caller before any token store access."""

    def __init__(self, *, identity_provider: IdentityProviderPort) -> None:
        self._identity_provider = identity_provider

    async def require_user(self, *, authorization_header: str | None) -> AuthenticatedPrincipal:
        """Resolve bearer token to an authenticated principal."""

        token = extract_bearer_token(authorization_header)
        principal = await self._identity_provider.get_user(access_token=token)
        if principal is None:
            raise InvalidAuthTokenError("invalid or expired access token")
        return principal
