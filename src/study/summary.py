"""Aggregate statistics for the answers given during one study session."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from src.study.srs import round_half_up


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """A single judgment made during a session, in the order it was made."""

    flashcard_id: str
    is_new: bool
    remembered: bool
    answered_at: datetime


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Final report shown when a session completes or is interrupted."""

    total_reviewed: int = 0
    new_cards_reviewed: int = 0
    review_cards_reviewed: int = 0
    remembered_count: int = 0
    forgotten_count: int = 0
    success_rate: int = 0


def calculate_summary(answers: Sequence[AnswerRecord]) -> SessionSummary:
    """Reduce the recorded answers; an empty history yields an all-zero summary."""
    total_reviewed = len(answers)
    new_cards_reviewed = sum(1 for record in answers if record.is_new)
    remembered_count = sum(1 for record in answers if record.remembered)
    success_rate = (
        round_half_up(remembered_count / total_reviewed * 100) if total_reviewed else 0
    )
    return SessionSummary(
        total_reviewed=total_reviewed,
        new_cards_reviewed=new_cards_reviewed,
        review_cards_reviewed=total_reviewed - new_cards_reviewed,
        remembered_count=remembered_count,
        forgotten_count=total_reviewed - remembered_count,
        success_rate=success_rate,
    )
