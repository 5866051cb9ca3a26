"""Spaced-repetition scheduling for binary remembered/forgotten reviews."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta

from src.db import DEFAULT_EASE_FACTOR


MIN_EASE_FACTOR = 1.3
# Successful recalls never leave the ease factor below the default.
SUCCESS_EASE_FLOOR = DEFAULT_EASE_FACTOR
EASE_BONUS = 0.1
EASE_PENALTY = 0.2
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6


@dataclass(frozen=True, slots=True)
class SchedulingParameters:
    """Scheduling state of a single flashcard."""

    interval: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    repetitions: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def calculate_next_parameters(
    current: SchedulingParameters,
    remembered: bool,
) -> SchedulingParameters:
    """Return the parameters that follow a review, using a binary SM-2 variant."""
    if not remembered:
        return SchedulingParameters(
            interval=FIRST_INTERVAL_DAYS,
            ease_factor=max(MIN_EASE_FACTOR, current.ease_factor - EASE_PENALTY),
            repetitions=0,
        )

    if current.repetitions == 0:
        interval = FIRST_INTERVAL_DAYS
    elif current.repetitions == 1:
        interval = SECOND_INTERVAL_DAYS
    else:
        interval = round_half_up(current.interval * current.ease_factor)

    return SchedulingParameters(
        interval=interval,
        ease_factor=max(SUCCESS_EASE_FLOOR, current.ease_factor + EASE_BONUS),
        repetitions=current.repetitions + 1,
    )


def calculate_next_review_date(today: date, interval: int) -> date:
    """Return the calendar day on which a card with ``interval`` becomes due."""
    return today + timedelta(days=interval)
