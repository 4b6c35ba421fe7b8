"""
SM-2 derived scheduler.

Pure computation with no I/O: every function takes the current wall-clock
time as an argument so callers (and tests) control it.

Two update rules coexist:
- calculate_next_review / apply_schedule: graded recall quality (0-5).
- apply_outcome: plain correct/incorrect answers.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from numbers import Real

from hafiz.domain.constants import (
    DEFAULT_EASE_FACTOR,
    FIRST_INTERVAL_FAIL,
    FIRST_INTERVAL_GOOD,
    FIRST_INTERVAL_PASS,
    GOOD_QUALITY,
    MAX_EASE_FACTOR,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    NEVER_REVIEWED,
    OUTCOME_EASE_BONUS,
    OUTCOME_EASE_PENALTY,
    OUTCOME_RETRY_HOURS,
    PASSING_QUALITY,
    SECOND_INTERVAL,
)
from hafiz.domain.errors import StateInconsistencyError, ValidationError
from hafiz.domain.models import ReviewState, ScheduleResult

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


# ---------- Numeric helpers ----------


def clamp_ease(value: float) -> float:
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, value))


def clamp_quality(quality: float) -> float:
    """
    Coerce a recall quality into [0, 5].

    Out-of-range numbers are clamped silently. Anything that is not a real
    number (strings, None, NaN, booleans) cannot be clamped and is rejected.
    """
    if isinstance(quality, bool) or not isinstance(quality, Real):
        raise ValidationError(f"Quality must be a number between 0 and 5, got {quality!r}")
    if math.isnan(quality):
        raise ValidationError("Quality must be a number between 0 and 5, got NaN")
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def round_half_up(value: float) -> int:
    # round() is banker's rounding; intervals round .5 upward
    return int(math.floor(value + 0.5))


def ceil_days(delta: timedelta) -> int:
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


# ---------- Graded path ----------


def next_ease_factor(ease_factor: float, quality: float) -> float:
    """
    SM-2 ease update.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), clamped to [1.3, 3.0].
    """
    miss = MAX_QUALITY - quality
    return clamp_ease(ease_factor + (0.1 - miss * (0.08 + miss * 0.02)))


def calculate_next_review(
    state: ReviewState | None, quality: float, now: datetime
) -> ScheduleResult:
    """
    Compute the next review for an item from its current state and a recall quality.

    Args:
        state: Current state, or None if the item was never reviewed.
        quality: Recall strength 0-5; values outside the range are clamped.
        now: Current time; the next review is scheduled relative to it.

    Returns:
        ScheduleResult with the new due date, ease factor and interval in days.
    """
    quality = clamp_quality(quality)
    ease = state.ease_factor if state else DEFAULT_EASE_FACTOR

    if state is None or state.is_new:
        if quality >= GOOD_QUALITY:
            interval = FIRST_INTERVAL_GOOD
        elif quality >= PASSING_QUALITY:
            interval = FIRST_INTERVAL_PASS
        else:
            interval = FIRST_INTERVAL_FAIL
        ease = clamp_ease(ease)
    else:
        ease = next_ease_factor(ease, quality)
        if quality < PASSING_QUALITY:
            interval = 1
        else:
            previous_interval = max(1, ceil_days(state.next_review - state.last_reviewed))
            if previous_interval == 1:
                interval = SECOND_INTERVAL
            else:
                interval = max(1, round_half_up(previous_interval * ease))

    return ScheduleResult(
        next_review=now + timedelta(days=interval),
        ease_factor=ease,
        interval=interval,
    )


def apply_schedule(
    state: ReviewState | None,
    word_id: int,
    quality: float,
    result: ScheduleResult,
    now: datetime,
) -> ReviewState:
    """Fold a graded result into the item's state; quality >= 3 counts as correct."""
    base = state or ReviewState(word_id=word_id)
    passed = clamp_quality(quality) >= PASSING_QUALITY
    return replace(
        base,
        correct_count=base.correct_count + (1 if passed else 0),
        incorrect_count=base.incorrect_count + (0 if passed else 1),
        last_reviewed=now,
        next_review=result.next_review,
        ease_factor=result.ease_factor,
    )


# ---------- Binary path ----------


def apply_outcome(
    state: ReviewState | None, word_id: int, correct: bool, now: datetime
) -> ReviewState:
    """
    Update an item's state from a plain correct/incorrect answer.

    Correct answers push the next review out by round(correct_count * ease) days;
    incorrect answers bring the item back in an hour.
    """
    base = state or ReviewState(word_id=word_id)

    if correct:
        correct_count = base.correct_count + 1
        ease = clamp_ease(base.ease_factor + OUTCOME_EASE_BONUS)
        days = round_half_up(correct_count * ease)
        return replace(
            base,
            correct_count=correct_count,
            ease_factor=ease,
            last_reviewed=now,
            next_review=now + timedelta(days=days),
        )

    return replace(
        base,
        incorrect_count=base.incorrect_count + 1,
        ease_factor=clamp_ease(base.ease_factor - OUTCOME_EASE_PENALTY),
        last_reviewed=now,
        next_review=now + timedelta(hours=OUTCOME_RETRY_HOURS),
    )


# ---------- Consistency ----------


def heal_state(state: ReviewState, now: datetime, strict: bool = False) -> ReviewState:
    """
    Repair a persisted state that violates its invariants.

    A due date earlier than the last review resets the scheduling fields to a
    fresh record (counters are kept). An ease factor outside [1.3, 3.0] is clamped.

    Args:
        strict: Raise StateInconsistencyError instead of repairing.
    """
    healed = state

    if not state.is_new and state.next_review < state.last_reviewed:
        reason = (
            f"next_review {state.next_review.isoformat()} is before "
            f"last_reviewed {state.last_reviewed.isoformat()}"
        )
        if strict:
            raise StateInconsistencyError(state.word_id, reason)
        logger.warning(f"Word {state.word_id}: {reason}; resetting schedule")
        healed = replace(
            healed,
            last_reviewed=NEVER_REVIEWED,
            next_review=now,
            ease_factor=DEFAULT_EASE_FACTOR,
        )

    if not MIN_EASE_FACTOR <= healed.ease_factor <= MAX_EASE_FACTOR:
        reason = f"ease_factor {healed.ease_factor} outside [{MIN_EASE_FACTOR}, {MAX_EASE_FACTOR}]"
        if strict:
            raise StateInconsistencyError(state.word_id, reason)
        logger.warning(f"Word {state.word_id}: {reason}; clamping")
        healed = replace(healed, ease_factor=clamp_ease(healed.ease_factor))

    if healed.correct_count < 0 or healed.incorrect_count < 0:
        reason = "negative review counters"
        if strict:
            raise StateInconsistencyError(state.word_id, reason)
        logger.warning(f"Word {state.word_id}: {reason}; flooring at zero")
        healed = replace(
            healed,
            correct_count=max(0, healed.correct_count),
            incorrect_count=max(0, healed.incorrect_count),
        )

    return healed
