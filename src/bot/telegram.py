"""Telegram application wiring for the flashcard study bot."""

from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
)

from .study_bot import StudyBot


def build_application(bot_token: str, bot: StudyBot) -> Application:
    """Configure the Telegram application instance."""
    application = ApplicationBuilder().token(bot_token).build()
    application.add_handler(CommandHandler("start", bot.handle_start))
    application.add_handler(CommandHandler("add", bot.handle_add))
    application.add_handler(CommandHandler("study", bot.handle_study))
    application.add_handler(CommandHandler("reset", bot.handle_reset))
    application.add_handler(CallbackQueryHandler(bot.handle_session_callback, pattern=r"^st_"))
    return application
