from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from src.db.flashcards import (
    FlashcardPayload,
    create_flashcard,
    get_user_flashcard,
    list_study_candidates,
    record_flashcard_review,
    reset_flashcard_progress,
    user_has_flashcards,
)
from src.db.users import upsert_user


@pytest.mark.asyncio
async def test_create_flashcard_applies_scheduling_defaults(session_factory) -> None:
    chat_id = 101
    now = datetime(2026, 5, 4, 8, 30, tzinfo=timezone.utc)

    async with session_factory() as session:
        async with session.begin():
            await upsert_user(session, chat_id, "Anna", None)
            flashcard = await create_flashcard(
                session,
                chat_id,
                FlashcardPayload(front="  λόγος ", back=" word  "),
                now=now,
            )

    assert uuid.UUID(flashcard.id)
    assert flashcard.front == "λόγος"
    assert flashcard.back == "word"
    assert flashcard.interval == 0
    assert flashcard.ease_factor == 2.5
    assert flashcard.repetitions == 0
    assert flashcard.next_review_date == now.date()
    assert flashcard.last_reviewed_at is None


@pytest.mark.asyncio
async def test_create_flashcard_rejects_blank_sides(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(ValueError):
            await create_flashcard(session, 102, FlashcardPayload(front=" ", back="answer"))


@pytest.mark.asyncio
async def test_get_user_flashcard_is_scoped_to_owner(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            await upsert_user(session, 201, "Owner", None)
            await upsert_user(session, 202, "Other", None)
            flashcard = await create_flashcard(
                session, 201, FlashcardPayload(front="σπίτι", back="house")
            )

        found = await get_user_flashcard(session, 201, flashcard.id)
        hidden = await get_user_flashcard(session, 202, flashcard.id)

    assert found is not None
    assert found.front == "σπίτι"
    assert hidden is None


@pytest.mark.asyncio
async def test_list_study_candidates_skips_future_reviews(session_factory) -> None:
    chat_id = 301
    now = datetime(2026, 5, 4, 8, 30, tzinfo=timezone.utc)

    async with session_factory() as session:
        async with session.begin():
            await upsert_user(session, chat_id, "Nikos", None)
            fresh = await create_flashcard(
                session, chat_id, FlashcardPayload(front="νέο", back="new"), now=now - timedelta(days=3)
            )
            due = await create_flashcard(
                session, chat_id, FlashcardPayload(front="τώρα", back="now"), now=now - timedelta(days=2)
            )
            later = await create_flashcard(
                session, chat_id, FlashcardPayload(front="αύριο", back="tomorrow"), now=now - timedelta(days=1)
            )
            await record_flashcard_review(
                session,
                due,
                interval=1,
                ease_factor=2.6,
                repetitions=1,
                next_review_date=now.date(),
                now=now - timedelta(days=1),
            )
            await record_flashcard_review(
                session,
                later,
                interval=6,
                ease_factor=2.6,
                repetitions=2,
                next_review_date=now.date() + timedelta(days=6),
                now=now,
            )

        candidates = await list_study_candidates(session, chat_id, now.date())

    assert [card.id for card in candidates] == [fresh.id, due.id]


@pytest.mark.asyncio
async def test_user_has_flashcards_counts_any_card(session_factory) -> None:
    async with session_factory() as session:
        async with session.begin():
            await upsert_user(session, 401, "Eleni", None)
            assert await user_has_flashcards(session, 401) is False
            await create_flashcard(session, 401, FlashcardPayload(front="θάλασσα", back="sea"))

        assert await user_has_flashcards(session, 401) is True
        assert await user_has_flashcards(session, 402) is False


@pytest.mark.asyncio
async def test_reset_flashcard_progress_clears_review_state(session_factory) -> None:
    now = datetime(2026, 5, 4, 8, 30, tzinfo=timezone.utc)

    async with session_factory() as session:
        async with session.begin():
            await upsert_user(session, 501, "Petros", None)
            flashcard = await create_flashcard(
                session, 501, FlashcardPayload(front="φίλος", back="friend"), now=now - timedelta(days=20)
            )
            await record_flashcard_review(
                session,
                flashcard,
                interval=15,
                ease_factor=2.8,
                repetitions=4,
                next_review_date=now.date() + timedelta(days=15),
                now=now - timedelta(days=1),
            )
            await reset_flashcard_progress(session, flashcard, now=now)

    assert flashcard.interval == 0
    assert flashcard.ease_factor == 2.5
    assert flashcard.repetitions == 0
    assert flashcard.next_review_date == now.date()
    assert flashcard.last_reviewed_at is None
