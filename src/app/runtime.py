"""Bootstrap logic for running the Telegram study bot."""

from __future__ import annotations

import asyncio
import logging

from src.app.settings import AppSettings
from src.bot import StudyBot, build_application
from src.db import get_session_factory, run_migrations_if_needed
from src.study import StudyService


LOGGER = logging.getLogger(__name__)


def _configure_logging(log_level: str) -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level,
    )


def _ensure_event_loop() -> None:
    """Guarantee that an asyncio event loop exists for the current thread."""
    try:
        asyncio.get_event_loop()
    except RuntimeError:
        asyncio.set_event_loop(asyncio.new_event_loop())


def run_bot(settings: AppSettings) -> None:
    """Start the Telegram bot using the provided settings."""
    _configure_logging(settings.log_level)

    try:
        run_migrations_if_needed()
    except Exception:
        LOGGER.exception("Database migrations failed. Aborting startup.")
        raise

    session_factory = get_session_factory()
    study_service = StudyService(session_factory, new_cards_limit=settings.new_cards_limit)
    bot = StudyBot(session_factory, study_service)
    application = build_application(settings.telegram_bot_token, bot)

    _ensure_event_loop()

    LOGGER.info(
        "Starting %s in %s mode (new card limit %s).",
        settings.app_name,
        settings.app_env,
        settings.new_cards_limit,
    )
    application.run_polling()
