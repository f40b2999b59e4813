"""Operator command deleting used and expired CSRF tokens for all users."""

from __future__ import annotations

import asyncio
import logging

from csrf_guard.application.services.csrf_cleanup_service import CsrfCleanupService
from csrf_guard.config.settings import load_settings
from csrf_guard.infrastructure.db.csrf_token_repository import SqlAlchemyCsrfTokenRepository
from csrf_guard.infrastructure.db.session import create_engine, create_session_factory
from csrf_guard.infrastructure.logging import configure_logging

logger = logging.getLogger(__name__)


async def run_sweep(database_url: str) -> int:
    """Delete dead CSRF tokens across users and return deleted count."""

    engine = create_engine(database_url)
    cleanup = CsrfCleanupService(
        csrf_tokens=SqlAlchemyCsrfTokenRepository(create_session_factory(engine)),
    )
    try:
        return await cleanup.sweep_all()
    finally:
        await engine.dispose()


def main() -> None:
    """Run one global sweep using runtime settings."""

    settings = load_settings()
    configure_logging(level=settings.log_level)
    deleted = asyncio.run(run_sweep(settings.database_url))
    logger.info("csrf_sweep_command_finished deleted=%s", deleted)


if __name__ == "__main__":
    main()
