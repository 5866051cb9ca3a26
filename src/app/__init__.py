"""Application bootstrap helpers for the flashcard study bot."""

from .runtime import run_bot
from .settings import AppSettings

__all__ = ["run_bot", "AppSettings"]
