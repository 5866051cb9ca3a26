from __future__ import annotations

from datetime import date

import pytest

from src.study.srs import (
    MIN_EASE_FACTOR,
    SchedulingParameters,
    calculate_next_parameters,
    calculate_next_review_date,
    round_half_up,
)


def test_first_and_second_success_use_fixed_intervals() -> None:
    first = calculate_next_parameters(SchedulingParameters(), remembered=True)
    second = calculate_next_parameters(first, remembered=True)

    assert first.interval == 1
    assert first.repetitions == 1
    assert second.interval == 6
    assert second.repetitions == 2


def test_mature_card_interval_grows_with_ease_factor() -> None:
    schedule = calculate_next_parameters(
        SchedulingParameters(interval=10, ease_factor=2.6, repetitions=3),
        remembered=True,
    )

    assert schedule.interval == 26
    assert schedule.ease_factor == pytest.approx(2.7)
    assert schedule.repetitions == 4


def test_consecutive_successes_follow_growth_sequence() -> None:
    params = SchedulingParameters()
    intervals = []
    ease_factors = []
    for _ in range(6):
        params = calculate_next_parameters(params, remembered=True)
        intervals.append(params.interval)
        ease_factors.append(params.ease_factor)

    assert intervals[:2] == [1, 6]
    for previous, current, ease in zip(intervals[1:], intervals[2:], ease_factors[1:]):
        assert current == round_half_up(previous * ease)
    assert ease_factors == sorted(ease_factors)
    assert all(ease >= 2.5 for ease in ease_factors)


@pytest.mark.parametrize(
    "current",
    [
        SchedulingParameters(),
        SchedulingParameters(interval=6, ease_factor=2.6, repetitions=2),
        SchedulingParameters(interval=120, ease_factor=3.1, repetitions=9),
        SchedulingParameters(interval=1, ease_factor=1.3, repetitions=0),
    ],
)
def test_failure_resets_progress(current: SchedulingParameters) -> None:
    schedule = calculate_next_parameters(current, remembered=False)

    assert schedule.interval == 1
    assert schedule.repetitions == 0
    assert schedule.ease_factor == pytest.approx(max(MIN_EASE_FACTOR, current.ease_factor - 0.2))


def test_ease_factor_never_drops_below_minimum() -> None:
    params = SchedulingParameters()
    for _ in range(20):
        params = calculate_next_parameters(params, remembered=False)
        assert params.ease_factor >= MIN_EASE_FACTOR

    assert params.ease_factor == MIN_EASE_FACTOR


def test_success_lifts_low_ease_factor_back_to_default() -> None:
    # Compatibility behaviour: a remembered card never keeps an ease factor below 2.5,
    # unlike graded SM-2 where ease can stay anywhere above 1.3.
    schedule = calculate_next_parameters(
        SchedulingParameters(interval=1, ease_factor=1.3, repetitions=0),
        remembered=True,
    )

    assert schedule.ease_factor == 2.5


def test_mixed_judgments_respect_ease_bounds() -> None:
    params = SchedulingParameters()
    for remembered in [True, False, False, True, True, False, True, True, True, False]:
        params = calculate_next_parameters(params, remembered=remembered)
        assert params.ease_factor >= MIN_EASE_FACTOR
        assert params.interval >= 0
        if remembered:
            assert params.ease_factor >= 2.5


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (13.5, 14), (-2.5, -3), (0.0, 0)],
)
def test_round_half_up_rounds_halves_away_from_zero(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_next_review_date_adds_interval_days() -> None:
    assert calculate_next_review_date(date(2026, 1, 30), 6) == date(2026, 2, 5)
    assert calculate_next_review_date(date(2026, 1, 30), 0) == date(2026, 1, 30)
