"""csrf-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from csrf_guard.application.ports.csrf_token_repository_port import CsrfTokenRepositoryPort
from csrf_guard.application.ports.identity_provider_port import IdentityProviderPort
from csrf_guard.application.services.csrf_cleanup_service import CsrfCleanupService
from csrf_guard.application.services.csrf_issuer_service import CsrfIssuerService
from csrf_guard.application.services.csrf_validator_service import CsrfValidatorService
from csrf_guard.config.settings import Settings, load_settings
from csrf_guard.domain.csrf.token_codec import CsrfTokenCodec
from csrf_guard.infrastructure.db.csrf_token_repository import SqlAlchemyCsrfTokenRepository
from csrf_guard.infrastructure.db.session import create_session_factory
from csrf_guard.infrastructure.http.auth_guard import CsrfAuthGuard
from csrf_guard.infrastructure.http.csrf_protection import (
    CsrfProtection,
    CsrfRejectedError,
    csrf_rejected_exception_handler,
)
from csrf_guard.infrastructure.http.csrf_request import CsrfHttpOptions
from csrf_guard.infrastructure.http.csrf_router import build_csrf_router
from csrf_guard.infrastructure.http.identity_client import HttpIdentityProvider
from csrf_guard.infrastructure.logging import configure_logging

CSRF_API_HOST = "0.0.0.0"
CSRF_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_csrf_token_repository(
    database_url: str,
    *,
    now: Callable[[], datetime] | None = None,
) -> CsrfTokenRepositoryPort:
    """Build CSRF token repository with SQLAlchemy session factory."""

    session_factory = create_session_factory(database_url)
    return SqlAlchemyCsrfTokenRepository(session_factory, now=now)


def build_identity_provider(settings: Settings) -> IdentityProviderPort:
    """Build HTTP identity provider adapter from runtime settings."""

    return HttpIdentityProvider(
        base_url=str(settings.identity_provider_url),
        api_key=settings.identity_provider_api_key,
        timeout_seconds=settings.identity_provider_timeout_seconds,
    )


def build_http_options(settings: Settings) -> CsrfHttpOptions:
    """Derive cookie attributes; Secure and domain scoping apply in production only."""

    return CsrfHttpOptions(
        cookie_name=settings.csrf_cookie_name,
        header_name=settings.csrf_header_name,
        body_field=settings.csrf_body_field,
        cookie_path=settings.csrf_cookie_path,
        cookie_domain=settings.csrf_cookie_domain if settings.is_production else None,
        cookie_secure=settings.is_production,
        cookie_max_age_seconds=settings.csrf_token_ttl_seconds,
    )


def create_app(
    *,
    settings: Settings | None = None,
    identity_provider: IdentityProviderPort | None = None,
    csrf_token_repository: CsrfTokenRepositoryPort | None = None,
    codec: CsrfTokenCodec | None = None,
    now: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Create FastAPI app exposing CSRF issuance and validation routes."""

    if settings is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)

    if identity_provider is None:
        identity_provider = build_identity_provider(settings)
    if csrf_token_repository is None:
        csrf_token_repository = build_csrf_token_repository(settings.database_url, now=now)
    if codec is None:
        codec = CsrfTokenCodec()

    options = build_http_options(settings)
    auth_guard = CsrfAuthGuard(identity_provider=identity_provider)
    issuer = CsrfIssuerService(
        csrf_tokens=csrf_token_repository,
        codec=codec,
        cleanup=CsrfCleanupService(csrf_tokens=csrf_token_repository),
        token_ttl=timedelta(seconds=settings.csrf_token_ttl_seconds),
        now=now,
    )
    validator = CsrfValidatorService(csrf_tokens=csrf_token_repository, codec=codec)

    app = FastAPI()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "content-type", settings.csrf_header_name],
    )
    app.add_exception_handler(CsrfRejectedError, csrf_rejected_exception_handler)
    app.include_router(
        build_csrf_router(
            issuer=issuer,
            validator=validator,
            auth_guard=auth_guard,
            options=options,
            expose_error_details=not settings.is_production,
        )
    )
    app.state.csrf_protection = CsrfProtection(
        validator=validator,
        auth_guard=auth_guard,
        options=options,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info(
        "csrf_api_configured environment=%s cookie_name=%s",
        settings.environment,
        options.cookie_name,
    )
    return app


def run_asgi_server(*, host: str = CSRF_API_HOST, port: int = CSRF_API_PORT) -> None:
    """Run csrf-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.csrf_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run csrf-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
