from __future__ import annotations

from datetime import datetime, timezone

from src.study.summary import AnswerRecord, SessionSummary, calculate_summary

ANSWERED_AT = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _answer(card_id: str, *, is_new: bool, remembered: bool) -> AnswerRecord:
    return AnswerRecord(
        flashcard_id=card_id,
        is_new=is_new,
        remembered=remembered,
        answered_at=ANSWERED_AT,
    )


def test_empty_history_gives_zero_summary() -> None:
    assert calculate_summary([]) == SessionSummary()


def test_summary_counts_new_review_and_judgments() -> None:
    answers = [
        _answer("a", is_new=True, remembered=True),
        _answer("b", is_new=True, remembered=False),
        _answer("c", is_new=False, remembered=True),
        _answer("d", is_new=False, remembered=False),
    ]

    summary = calculate_summary(answers)

    assert summary == SessionSummary(
        total_reviewed=4,
        new_cards_reviewed=2,
        review_cards_reviewed=2,
        remembered_count=2,
        forgotten_count=2,
        success_rate=50,
    )


def test_success_rate_rounds_half_up() -> None:
    # 1 of 8 remembered is 12.5%, which rounds up.
    answers = [_answer("a", is_new=False, remembered=True)]
    answers += [_answer(f"f{index}", is_new=False, remembered=False) for index in range(7)]

    assert calculate_summary(answers).success_rate == 13


def test_success_rate_for_thirds() -> None:
    answers = [
        _answer("a", is_new=True, remembered=True),
        _answer("b", is_new=True, remembered=True),
        _answer("c", is_new=True, remembered=False),
    ]

    summary = calculate_summary(answers)

    assert summary.success_rate == 67
    assert summary.remembered_count + summary.forgotten_count == summary.total_reviewed
    assert summary.new_cards_reviewed + summary.review_cards_reviewed == summary.total_reviewed
