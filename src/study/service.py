"""Storage-facing study operations: fetching the daily queue and recording reviews."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db import Flashcard
from src.db.flashcards import (
    get_user_flashcard,
    list_study_candidates,
    record_flashcard_review,
    reset_flashcard_progress,
    user_has_flashcards,
)
from src.db.users import user_exists
from src.study.errors import InvalidInputError, NotFoundError, ServerError, UnauthorizedError
from src.study.selector import DEFAULT_NEW_CARDS_LIMIT, StudySessionData, select_study_cards
from src.study.srs import SchedulingParameters, calculate_next_parameters, calculate_next_review_date


LOGGER = logging.getLogger(__name__)

_STORAGE_ERRORS = (SQLAlchemyError, OSError)


@dataclass(frozen=True, slots=True)
class ReviewCommand:
    flashcard_id: str
    remembered: bool


@dataclass(frozen=True, slots=True)
class ReviewResult:
    """Scheduling fields of a flashcard after it has been updated."""

    flashcard_id: str
    interval: int
    ease_factor: float
    repetitions: int
    next_review_date: date
    last_reviewed_at: Optional[datetime]

    @classmethod
    def from_flashcard(cls, flashcard: Flashcard) -> ReviewResult:
        return cls(
            flashcard_id=flashcard.id,
            interval=flashcard.interval,
            ease_factor=flashcard.ease_factor,
            repetitions=flashcard.repetitions,
            next_review_date=flashcard.next_review_date,
            last_reviewed_at=flashcard.last_reviewed_at,
        )


def parse_flashcard_id(value: object) -> str:
    """Return the canonical UUID string or raise InvalidInputError."""
    if not isinstance(value, str):
        raise InvalidInputError("flashcard_id must be a string.")
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise InvalidInputError("flashcard_id must be a valid UUID.") from exc


def parse_review_command(payload: Mapping[str, object]) -> ReviewCommand:
    """Validate a raw review request such as a decoded JSON body."""
    if "flashcard_id" not in payload:
        raise InvalidInputError("flashcard_id is required.")
    if "remembered" not in payload:
        raise InvalidInputError("remembered is required.")

    flashcard_id = parse_flashcard_id(payload["flashcard_id"])
    remembered = payload["remembered"]
    if not isinstance(remembered, bool):
        raise InvalidInputError("remembered must be a boolean.")
    return ReviewCommand(flashcard_id=flashcard_id, remembered=remembered)


class StudyService:
    """Reads study queues from storage and applies review judgments to it."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        new_cards_limit: int = DEFAULT_NEW_CARDS_LIMIT,
    ) -> None:
        self._session_factory = session_factory
        self._new_cards_limit = new_cards_limit

    @staticmethod
    def _require_identity(chat_id: Optional[int]) -> int:
        if chat_id is None:
            raise UnauthorizedError()
        return chat_id

    @staticmethod
    async def _ensure_registered(session: AsyncSession, chat_id: int) -> None:
        if not await user_exists(session, chat_id):
            raise UnauthorizedError()

    async def get_study_session(
        self,
        chat_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> StudySessionData:
        """Return today's queue (due cards, then capped new cards) for a user."""
        chat_id = self._require_identity(chat_id)
        if now is None:
            now = datetime.now(timezone.utc)
        today = now.date()

        try:
            async with self._session_factory() as session:
                await self._ensure_registered(session, chat_id)
                records = await list_study_candidates(session, chat_id, today)
                has_any = await user_has_flashcards(session, chat_id)
        except _STORAGE_ERRORS as exc:
            LOGGER.exception("Failed to load study session for chat %s.", chat_id)
            raise ServerError() from exc

        data = select_study_cards(
            records,
            today,
            has_any_flashcards=has_any,
            new_cards_limit=self._new_cards_limit,
        )
        LOGGER.info(
            "Prepared study session for chat %s: %s review and %s new cards.",
            chat_id,
            data.statistics.review_cards,
            data.statistics.new_cards,
        )
        return data

    async def submit_review(
        self,
        chat_id: Optional[int],
        flashcard_id: object,
        remembered: object,
        now: Optional[datetime] = None,
    ) -> ReviewResult:
        """Apply a remembered/forgotten judgment to a card owned by the caller."""
        chat_id = self._require_identity(chat_id)
        command = parse_review_command({"flashcard_id": flashcard_id, "remembered": remembered})
        if now is None:
            now = datetime.now(timezone.utc)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._ensure_registered(session, chat_id)
                    flashcard = await get_user_flashcard(session, chat_id, command.flashcard_id)
                    if flashcard is None:
                        raise NotFoundError()

                    current = SchedulingParameters(
                        interval=flashcard.interval,
                        ease_factor=flashcard.ease_factor,
                        repetitions=flashcard.repetitions,
                    )
                    updated = calculate_next_parameters(current, command.remembered)
                    await record_flashcard_review(
                        session,
                        flashcard,
                        interval=updated.interval,
                        ease_factor=updated.ease_factor,
                        repetitions=updated.repetitions,
                        next_review_date=calculate_next_review_date(now.date(), updated.interval),
                        now=now,
                    )
                    result = ReviewResult.from_flashcard(flashcard)
        except _STORAGE_ERRORS as exc:
            LOGGER.exception("Failed to record review of flashcard %s.", command.flashcard_id)
            raise ServerError() from exc

        LOGGER.debug(
            "Flashcard %s reviewed (remembered=%s); next review on %s.",
            result.flashcard_id,
            command.remembered,
            result.next_review_date,
        )
        return result

    async def reset_progress(
        self,
        chat_id: Optional[int],
        flashcard_id: object,
        now: Optional[datetime] = None,
    ) -> ReviewResult:
        """Forget all learning progress of a card so it is studied as new again."""
        chat_id = self._require_identity(chat_id)
        card_id = parse_flashcard_id(flashcard_id)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._ensure_registered(session, chat_id)
                    flashcard = await get_user_flashcard(session, chat_id, card_id)
                    if flashcard is None:
                        raise NotFoundError()
                    await reset_flashcard_progress(session, flashcard, now=now)
                    result = ReviewResult.from_flashcard(flashcard)
        except _STORAGE_ERRORS as exc:
            LOGGER.exception("Failed to reset progress of flashcard %s.", card_id)
            raise ServerError() from exc

        return result


class ServiceStudyBackend:
    """Binds a StudyService to one authenticated chat for use by a StudySession."""

    def __init__(self, service: StudyService, chat_id: Optional[int]) -> None:
        self._service = service
        self._chat_id = chat_id

    async def fetch_session(self) -> StudySessionData:
        return await self._service.get_study_session(self._chat_id)

    async def submit_review(self, flashcard_id: str, remembered: bool) -> ReviewResult:
        return await self._service.submit_review(self._chat_id, flashcard_id, remembered)
