"""Helpers for working with flashcard persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import DEFAULT_EASE_FACTOR, Flashcard


@dataclass(slots=True)
class FlashcardPayload:
    """Text content of a flashcard that is about to be persisted."""

    front: str
    back: str

    def normalized(self) -> "FlashcardPayload":
        """Return a payload with leading/trailing whitespace stripped."""
        return FlashcardPayload(front=self.front.strip(), back=self.back.strip())


async def create_flashcard(
    session: AsyncSession,
    chat_id: int,
    payload: FlashcardPayload,
    now: Optional[datetime] = None,
) -> Flashcard:
    """Store a new flashcard for the user with fresh scheduling defaults."""
    if now is None:
        now = datetime.now(timezone.utc)

    normalized = payload.normalized()
    if not normalized.front or not normalized.back:
        raise ValueError("Flashcard front and back must not be empty.")

    flashcard = Flashcard(
        chat_id=chat_id,
        front=normalized.front,
        back=normalized.back,
        interval=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        repetitions=0,
        next_review_date=now.date(),
        last_reviewed_at=None,
        created_at=now,
        updated_at=now,
    )
    session.add(flashcard)
    await session.flush()
    return flashcard


async def get_user_flashcard(
    session: AsyncSession,
    chat_id: int,
    flashcard_id: str,
) -> Optional[Flashcard]:
    """Return the flashcard only when it belongs to the given user."""
    stmt = select(Flashcard).where(
        Flashcard.id == flashcard_id,
        Flashcard.chat_id == chat_id,
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def list_study_candidates(
    session: AsyncSession,
    chat_id: int,
    today: date,
) -> Sequence[Flashcard]:
    """Return never-reviewed and due flashcards of a user in storage order."""
    stmt = (
        select(Flashcard)
        .where(
            Flashcard.chat_id == chat_id,
            or_(
                Flashcard.last_reviewed_at.is_(None),
                Flashcard.next_review_date <= today,
            ),
        )
        .order_by(Flashcard.created_at, Flashcard.id)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def user_has_flashcards(session: AsyncSession, chat_id: int) -> bool:
    """Check whether the user owns at least one flashcard, due or not."""
    stmt = select(Flashcard.id).where(Flashcard.chat_id == chat_id).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none() is not None


async def record_flashcard_review(
    session: AsyncSession,
    flashcard: Flashcard,
    *,
    interval: int,
    ease_factor: float,
    repetitions: int,
    next_review_date: date,
    now: Optional[datetime] = None,
) -> Flashcard:
    """Persist a spaced-repetition review outcome for the given flashcard."""
    if now is None:
        now = datetime.now(timezone.utc)

    flashcard.interval = interval
    flashcard.ease_factor = ease_factor
    flashcard.repetitions = repetitions
    flashcard.next_review_date = next_review_date
    flashcard.last_reviewed_at = now
    flashcard.updated_at = now
    await session.flush()
    return flashcard


async def reset_flashcard_progress(
    session: AsyncSession,
    flashcard: Flashcard,
    now: Optional[datetime] = None,
) -> Flashcard:
    """Return a flashcard to the scheduling state it had when created."""
    if now is None:
        now = datetime.now(timezone.utc)

    flashcard.interval = 0
    flashcard.ease_factor = DEFAULT_EASE_FACTOR
    flashcard.repetitions = 0
    flashcard.next_review_date = now.date()
    flashcard.last_reviewed_at = None
    flashcard.updated_at = now
    await session.flush()
    return flashcard
