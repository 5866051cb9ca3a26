"""Selection of the cards that make up today's study queue."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Tuple


DEFAULT_NEW_CARDS_LIMIT = 20


class SchedulingRecord(Protocol):
    """Minimal view of a stored flashcard needed to decide whether it is studied."""

    id: str
    front: str
    back: str
    next_review_date: date
    last_reviewed_at: Optional[datetime]


@dataclass(frozen=True, slots=True)
class StudyCard:
    """Card shown during a session; ``is_new`` is fixed when the queue is built."""

    id: str
    front: str
    back: str
    is_new: bool


@dataclass(frozen=True, slots=True)
class StudySessionStatistics:
    total_cards: int
    new_cards: int
    review_cards: int


@dataclass(frozen=True, slots=True)
class StudySessionData:
    """Everything the session engine needs to start studying."""

    cards: Tuple[StudyCard, ...]
    statistics: StudySessionStatistics
    has_any_flashcards: bool


def _to_study_card(record: SchedulingRecord, is_new: bool) -> StudyCard:
    return StudyCard(id=record.id, front=record.front, back=record.back, is_new=is_new)


def select_study_cards(
    records: Iterable[SchedulingRecord],
    today: date,
    *,
    has_any_flashcards: bool,
    new_cards_limit: int = DEFAULT_NEW_CARDS_LIMIT,
) -> StudySessionData:
    """Build the queue: every due review card first, then up to ``new_cards_limit`` new cards."""
    review_cards = []
    new_cards = []
    for record in records:
        if record.last_reviewed_at is None:
            if len(new_cards) < new_cards_limit:
                new_cards.append(_to_study_card(record, is_new=True))
        elif record.next_review_date <= today:
            review_cards.append(_to_study_card(record, is_new=False))

    cards = tuple(review_cards + new_cards)
    return StudySessionData(
        cards=cards,
        statistics=StudySessionStatistics(
            total_cards=len(cards),
            new_cards=len(new_cards),
            review_cards=len(review_cards),
        ),
        has_any_flashcards=has_any_flashcards,
    )
