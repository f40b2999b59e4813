"""FastAPI router for CSRF token issuance and validation endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from csrf_guard.application.dto.csrf_models import CsrfTokenIssueResponse, CsrfValidationResponse
from csrf_guard.application.ports.identity_provider_port import (
    AuthenticatedPrincipal,
    IdentityProviderError,
)
from csrf_guard.application.services.csrf_issuer_service import CsrfIssuerService
from csrf_guard.application.services.csrf_validator_service import CsrfValidatorService
from csrf_guard.infrastructure.http.auth_guard import (
    CsrfAuthGuard,
    InvalidAuthTokenError,
    MissingAuthTokenError,
)
from csrf_guard.infrastructure.http.csrf_request import (
    CsrfHttpOptions,
    extract_cookie_token,
    extract_header_token,
    resolve_client_ip,
)

CSRF_TOKEN_PATH = "/csrf-token"
logger = logging.getLogger(__name__)


def build_csrf_router(
    *,
    issuer: CsrfIssuerService,
    validator: CsrfValidatorService,
    auth_guard: CsrfAuthGuard,
    options: CsrfHttpOptions,
    expose_error_details: bool = False,
) -> APIRouter:
    """Build router exposing CSRF issuance (GET) and validation (POST)."""

    router = APIRouter(tags=["csrf"])

    @router.get(CSRF_TOKEN_PATH, response_model=CsrfTokenIssueResponse)
    async def issue_csrf_token(
        request: Request,
        response: Response,
        authorization: Annotated[str | None, Header()] = None,
    ) -> CsrfTokenIssueResponse | JSONResponse:
        principal = await require_principal(
            auth_guard=auth_guard,
            authorization_header=authorization,
        )

        try:
            issued = await issuer.issue(
                user_id=principal.user_id,
                ip_address=resolve_client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
        except Exception as error:  # noqa: BLE001
            logger.exception("csrf_token_issue_failed user_id=%s", principal.user_id)
            return internal_error_response(error, expose_details=expose_error_details)

        response.set_cookie(
            key=options.cookie_name,
            value=issued.cookie_token,
            max_age=options.cookie_max_age_seconds,
            path=options.cookie_path,
            domain=options.cookie_domain,
            secure=options.cookie_secure,
            httponly=True,
            samesite="strict",
        )
        return CsrfTokenIssueResponse(
            header_token=issued.header_token,
            expires_at=issued.expires_at,
        )

    @router.post(
        CSRF_TOKEN_PATH,
        response_model=CsrfValidationResponse,
        response_model_exclude_none=True,
    )
    async def validate_csrf_token(
        request: Request,
        authorization: Annotated[str | None, Header()] = None,
    ) -> CsrfValidationResponse | JSONResponse:
        principal = await require_principal(
            auth_guard=auth_guard,
            authorization_header=authorization,
        )

        try:
            result = await validator.validate(
                user_id=principal.user_id,
                cookie_token=extract_cookie_token(request, options=options),
                header_token=await extract_header_token(request, options=options),
                client_ip=resolve_client_ip(request),
            )
        except Exception as error:  # noqa: BLE001
            logger.exception("csrf_token_validate_failed user_id=%s", principal.user_id)
            return internal_error_response(error, expose_details=expose_error_details)

        if not result.is_valid:
            return JSONResponse(
                status_code=403,
                content={"valid": False, "error": result.outcome.value},
            )
        return CsrfValidationResponse(valid=True)

    return router


async def require_principal(
    *,
    auth_guard: CsrfAuthGuard,
    authorization_header: str | None,
) -> AuthenticatedPrincipal:
    """Resolve authenticated caller and map auth failures to HTTP 401."""

    try:
        return await auth_guard.require_user(authorization_header=authorization_header)
    except MissingAuthTokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except InvalidAuthTokenError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except IdentityProviderError as exc:
        logger.error("identity_provider_unavailable error=%s", exc)
        raise HTTPException(status_code=500, detail="internal server error") from exc


def internal_error_response(error: Exception, *, expose_details: bool) -> JSONResponse:
    """Build HTTP 500 body, carrying exception text only outside production."""

    content: dict[str, str] = {"error": "internal server error"}
    if expose_details:
        content["detail"] = str(error)
    return JSONResponse(status_code=500, content=content)
