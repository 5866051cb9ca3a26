"""Telegram handlers that drive study sessions."""

from __future__ import annotations

import logging
from contextlib import suppress
from html import escape
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Message, Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from src.db.flashcards import FlashcardPayload, create_flashcard
from src.db.users import upsert_user, user_exists
from src.study import (
    ServiceStudyBackend,
    SessionStatus,
    StudyService,
    StudyServiceError,
    StudySession,
    UnauthorizedError,
)
from src.study.errors import ERROR_MESSAGES
from src.study.selector import StudyCard
from src.study.session import SessionState
from src.study.summary import SessionSummary


LOGGER = logging.getLogger(__name__)

CALLBACK_START = "st_start"
CALLBACK_REVEAL = "st_reveal"
CALLBACK_STOP = "st_stop"
CALLBACK_ANSWER_PREFIX = "st_answer"


class StudyBot:
    """Translates Telegram updates into study-session commands and renders the state."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        study_service: StudyService,
    ) -> None:
        self._session_factory = session_factory
        self._study_service = study_service
        self._sessions: Dict[int, StudySession] = {}

    def get_session(self, chat_id: int) -> Optional[StudySession]:
        return self._sessions.get(chat_id)

    async def handle_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Register the chat and explain the available commands."""
        if not update.message:
            return

        chat = update.effective_chat
        if chat is None:
            return

        user = update.effective_user
        async with self._session_factory() as session:
            async with session.begin():
                await upsert_user(
                    session,
                    chat.id,
                    getattr(user, "first_name", None),
                    getattr(user, "last_name", None),
                )

        greeting = (
            "Hi! I help you memorise flashcards with spaced repetition.\n"
            "- /add front | back: add a new card;\n"
            "- /study: review the cards due today;\n"
            "- /reset <card id>: start learning a card from scratch."
        )
        await update.message.reply_text(greeting)

    async def handle_add(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        chat = update.effective_chat
        if message is None or chat is None:
            return

        raw = " ".join(getattr(context, "args", None) or [])
        front, separator, back = raw.partition("|")
        if not separator or not front.strip() or not back.strip():
            await message.reply_text("Usage: /add front | back")
            return

        async with self._session_factory() as session:
            async with session.begin():
                if not await user_exists(session, chat.id):
                    await message.reply_text(ERROR_MESSAGES["unauthorized"])
                    return
                flashcard = await create_flashcard(
                    session, chat.id, FlashcardPayload(front=front, back=back)
                )

        LOGGER.info("Chat %s added flashcard %s.", chat.id, flashcard.id)
        await message.reply_text(
            f"Card added: <b>{self._escape_html(flashcard.front)}</b>\n<code>{flashcard.id}</code>",
            parse_mode=ParseMode.HTML,
        )

    async def handle_reset(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        chat = update.effective_chat
        if message is None or chat is None:
            return

        args = getattr(context, "args", None) or []
        if len(args) != 1:
            await message.reply_text("Usage: /reset <card id>")
            return

        try:
            await self._study_service.reset_progress(chat.id, args[0])
        except StudyServiceError as exc:
            await message.reply_text(exc.message)
            return

        await message.reply_text("Progress reset. The card will show up as new in your next session.")

    async def handle_study(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Load today's queue and offer to start the session."""
        message = update.message
        chat = update.effective_chat
        if message is None or chat is None:
            return

        chat_id = chat.id
        previous = self._sessions.pop(chat_id, None)
        if previous is not None:
            previous.finish()

        async def on_unauthorized(exc: UnauthorizedError) -> None:
            self._drop_session(chat_id)
            await context.bot.send_message(chat_id=chat_id, text=exc.message)

        study_session = StudySession(
            ServiceStudyBackend(self._study_service, chat_id),
            on_unauthorized=on_unauthorized,
        )
        self._sessions[chat_id] = study_session

        try:
            state = await study_session.load()
        except UnauthorizedError as exc:
            self._drop_session(chat_id)
            await message.reply_text(exc.message)
            return

        if state.status is SessionStatus.READY:
            await message.reply_text(
                self._format_session_ready(state),
                parse_mode=ParseMode.HTML,
                reply_markup=self._build_start_keyboard(),
            )
            return

        self._drop_session(chat_id)
        if state.status is SessionStatus.EMPTY:
            await message.reply_text(self._format_empty_session(state.has_any_flashcards))
        else:
            await message.reply_text(state.error or ERROR_MESSAGES["server_error"])

    async def handle_session_callback(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        """Handle start, reveal, answer and stop buttons of the study keyboard."""
        query = update.callback_query
        if query is None or query.data is None:
            return

        message = query.message
        if message is None or message.chat is None:
            await query.answer()
            return

        chat_id = message.chat.id
        study_session = self._sessions.get(chat_id)
        if study_session is None:
            await query.answer("This session has ended. Send /study to begin a new one.", show_alert=True)
            return

        parts = query.data.split(":")
        action = parts[0]

        if action == CALLBACK_START:
            accepted = study_session.start()
        elif action == CALLBACK_REVEAL:
            accepted = study_session.reveal()
        elif action == CALLBACK_STOP:
            accepted = study_session.interrupt()
        elif action == CALLBACK_ANSWER_PREFIX and len(parts) == 3 and parts[2] in {"0", "1"}:
            accepted = study_session.answer(parts[2] == "1", flashcard_id=parts[1])
        else:
            await query.answer("Unknown action.", show_alert=True)
            return

        await query.answer()
        if not accepted:
            return

        await self._render(query, message, chat_id, study_session)

    async def _render(
        self,
        query: object,
        message: Message,
        chat_id: int,
        study_session: StudySession,
    ) -> None:
        state = study_session.state

        if state.status in {SessionStatus.COMPLETED, SessionStatus.INTERRUPTED} and state.summary:
            text = self._format_summary(
                state.summary,
                interrupted=state.status is SessionStatus.INTERRUPTED,
            )
            self._drop_session(chat_id)
            await self._edit_or_reply(query, message, text, None)
            return

        card = state.current_card
        if card is None:
            return

        if state.is_revealed:
            text = self._format_card_answer(card, state)
            markup = self._build_answer_keyboard(card)
        else:
            text = self._format_card_question(card, state)
            markup = self._build_reveal_keyboard()
        await self._edit_or_reply(query, message, text, markup)

    async def _edit_or_reply(
        self,
        query: object,
        message: Message,
        text: str,
        markup: Optional[InlineKeyboardMarkup],
    ) -> None:
        try:
            await query.edit_message_text(text, parse_mode=ParseMode.HTML, reply_markup=markup)
        except Exception:  # pragma: no cover - best effort update
            LOGGER.debug("Could not edit study message in place.", exc_info=True)
            with suppress(Exception):
                await query.edit_message_reply_markup(reply_markup=None)
            await message.reply_text(text, parse_mode=ParseMode.HTML, reply_markup=markup)

    def _drop_session(self, chat_id: int) -> None:
        study_session = self._sessions.pop(chat_id, None)
        if study_session is not None:
            study_session.finish()

    @staticmethod
    def _build_start_keyboard() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [[InlineKeyboardButton("Start studying", callback_data=CALLBACK_START)]]
        )

    @staticmethod
    def _build_reveal_keyboard() -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [InlineKeyboardButton("Show answer", callback_data=CALLBACK_REVEAL)],
                [InlineKeyboardButton("Stop", callback_data=CALLBACK_STOP)],
            ]
        )

    @staticmethod
    def _build_answer_keyboard(card: StudyCard) -> InlineKeyboardMarkup:
        return InlineKeyboardMarkup(
            [
                [
                    InlineKeyboardButton(
                        "Remembered", callback_data=f"{CALLBACK_ANSWER_PREFIX}:{card.id}:1"
                    ),
                    InlineKeyboardButton(
                        "Forgot", callback_data=f"{CALLBACK_ANSWER_PREFIX}:{card.id}:0"
                    ),
                ],
                [InlineKeyboardButton("Stop", callback_data=CALLBACK_STOP)],
            ]
        )

    @staticmethod
    def _escape_html(text: Optional[str]) -> str:
        if not text:
            return ""
        return escape(text, quote=False)

    @staticmethod
    def _format_session_ready(state: SessionState) -> str:
        statistics = state.statistics
        total = statistics.total_cards if statistics else len(state.cards)
        new_cards = statistics.new_cards if statistics else 0
        review_cards = statistics.review_cards if statistics else 0
        return (
            "<b>Your study session is ready</b>\n"
            f"Cards today: {total}\n"
            f"<i>To review:</i> {review_cards} · <i>New:</i> {new_cards}"
        )

    @staticmethod
    def _format_empty_session(has_any_flashcards: bool) -> str:
        if has_any_flashcards:
            return "Nothing to review today. Come back tomorrow!"
        return "You have no flashcards yet. Add one with /add front | back."

    def _card_header(self, card: StudyCard, state: SessionState) -> str:
        progress = state.progress
        kind = "new" if card.is_new else "review"
        return f"<b>Card {progress.current_index + 1}/{progress.total_cards}</b> <i>({kind})</i>"

    def _format_card_question(self, card: StudyCard, state: SessionState) -> str:
        lines = [
            self._card_header(card, state),
            "",
            f"<b>Front:</b> {self._escape_html(card.front)}",
            "",
            "<i>Try to recall the answer, then press «Show answer».</i>",
        ]
        return "\n".join(lines)

    def _format_card_answer(self, card: StudyCard, state: SessionState) -> str:
        lines = [
            self._card_header(card, state),
            "",
            f"<b>Front:</b> {self._escape_html(card.front)}",
            f"<b>Back:</b> {self._escape_html(card.back)}",
            "",
            "<i>Did you remember it?</i>",
        ]
        return "\n".join(lines)

    @staticmethod
    def _format_summary(summary: SessionSummary, interrupted: bool) -> str:
        title = "Session interrupted" if interrupted else "Session complete"
        lines: List[str] = [
            f"<b>{title}</b>",
            f"Cards reviewed: {summary.total_reviewed}",
            f"<i>New:</i> {summary.new_cards_reviewed} · <i>Review:</i> {summary.review_cards_reviewed}",
            f"<i>Remembered:</i> {summary.remembered_count} · <i>Forgot:</i> {summary.forgotten_count}",
            f"Success rate: {summary.success_rate}%",
        ]
        return "\n".join(lines)
