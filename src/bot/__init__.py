"""Telegram front-end for the flashcard study engine."""

from .study_bot import StudyBot
from .telegram import build_application

__all__ = ["StudyBot", "build_application"]
