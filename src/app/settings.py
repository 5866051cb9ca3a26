"""Configuration helpers for the flashcard study bot runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.study.selector import DEFAULT_NEW_CARDS_LIMIT


MAX_NEW_CARDS_LIMIT = 200


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    telegram_bot_token: str
    new_cards_limit: int = DEFAULT_NEW_CARDS_LIMIT

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "Flashcard Study Bot")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")
        telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN")

        if not telegram_bot_token:
            raise RuntimeError(
                "TELEGRAM_BOT_TOKEN environment variable is required to start the Telegram bot."
            )

        try:
            new_cards_limit = int(os.getenv("STUDY_NEW_CARDS_LIMIT", str(DEFAULT_NEW_CARDS_LIMIT)))
        except ValueError as exc:
            raise RuntimeError("STUDY_NEW_CARDS_LIMIT must be an integer.") from exc
        if new_cards_limit < 1 or new_cards_limit > MAX_NEW_CARDS_LIMIT:
            raise RuntimeError(f"STUDY_NEW_CARDS_LIMIT must be between 1 and {MAX_NEW_CARDS_LIMIT}.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            telegram_bot_token=telegram_bot_token,
            new_cards_limit=new_cards_limit,
        )
