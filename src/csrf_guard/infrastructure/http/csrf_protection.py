"""Reusable FastAPI dependency enforcing CSRF validation on mutating routes."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from csrf_guard.application.ports.identity_provider_port import AuthenticatedPrincipal
from csrf_guard.application.services.csrf_validator_service import CsrfValidatorService
from csrf_guard.domain.csrf.validation_outcome import CsrfValidationOutcome
from csrf_guard.infrastructure.http.auth_guard import CsrfAuthGuard
from csrf_guard.infrastructure.http.csrf_request import (
    SAFE_METHODS,
    CsrfHttpOptions,
    extract_cookie_token,
    extract_header_token,
    resolve_client_ip,
)
from csrf_guard.infrastructure.http.csrf_router import require_principal


class CsrfRejectedError(PermissionError):
    """Raised by `CsrfProtection` when a mutating request fails CSRF validation."""

    def __init__(self, *, outcome: CsrfValidationOutcome) -> None:
        super().__init__(f"csrf validation failed: {outcome.value}")
        self.outcome = outcome


class CsrfProtection:
    """Authenticate the caller and require a valid token pair for unsafe methods.

    Use as `Depends(protection)`; the resolved principal is returned to the route.
    """

    def __init__(
        self,
        *,
        validator: CsrfValidatorService,
        auth_guard: CsrfAuthGuard,
        options: CsrfHttpOptions,
    ) -> None:
        self._validator = validator
        self._auth_guard = auth_guard
        self._options = options

    async def __call__(self, request: Request) -> AuthenticatedPrincipal:
        principal = await require_principal(
            auth_guard=self._auth_guard,
            authorization_header=request.headers.get("authorization"),
        )
        if request.method.upper() in SAFE_METHODS:
            return principal

        result = await self._validator.validate(
            user_id=principal.user_id,
            cookie_token=extract_cookie_token(request, options=self._options),
            header_token=await extract_header_token(request, options=self._options),
            client_ip=resolve_client_ip(request),
        )
        if not result.is_valid:
            raise CsrfRejectedError(outcome=result.outcome)
        return principal


async def csrf_rejected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render `CsrfRejectedError` as the 403 validation failure body."""

    _ = request
    assert isinstance(exc, CsrfRejectedError)
    return JSONResponse(status_code=403, content={"valid": False, "error": exc.outcome.value})
