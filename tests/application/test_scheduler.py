from datetime import datetime, timedelta, timezone

import pytest

from hafiz.application.scheduler import (
    apply_outcome,
    apply_schedule,
    calculate_next_review,
    clamp_quality,
    heal_state,
    next_ease_factor,
    round_half_up,
)
from hafiz.domain.constants import NEVER_REVIEWED
from hafiz.domain.errors import StateInconsistencyError, ValidationError
from hafiz.domain.models import ReviewState

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def reviewed(days_ago: int, due_in: int = 0, ease: float = 2.5) -> ReviewState:
    """A state last reviewed `days_ago` days before NOW and due `due_in` days after NOW."""
    return ReviewState(
        word_id=1,
        correct_count=1,
        last_reviewed=NOW - timedelta(days=days_ago),
        next_review=NOW + timedelta(days=due_in),
        ease_factor=ease,
    )


PRIOR_STATES = [
    None,
    ReviewState(word_id=1),
    reviewed(1),
    reviewed(6),
    reviewed(16, ease=1.3),
    reviewed(40, ease=3.0),
    reviewed(3, due_in=-1, ease=2.1),
]


# --- First review ---


@pytest.mark.parametrize(
    "quality,interval",
    [(5, 3), (4, 3), (3.5, 2), (3, 2), (2.9, 1), (2, 1), (0, 1)],
)
def test_first_review_interval(quality, interval):
    result = calculate_next_review(None, quality, NOW)
    assert result.interval == interval
    assert result.next_review == NOW + timedelta(days=interval)
    assert result.ease_factor == 2.5


def test_first_review_with_sentinel_state_keeps_stored_ease():
    state = ReviewState(word_id=1, last_reviewed=NEVER_REVIEWED, ease_factor=2.1)
    result = calculate_next_review(state, 5, NOW)
    assert result.interval == 3
    assert result.ease_factor == 2.1


# --- Subsequent reviews ---


def test_perfect_recall_after_six_day_interval():
    result = calculate_next_review(reviewed(6), 5, NOW)
    assert result.ease_factor == pytest.approx(2.6)
    assert result.interval == 16  # round(6 * 2.6)
    assert result.next_review == NOW + timedelta(days=16)


def test_one_day_interval_graduates_to_six():
    result = calculate_next_review(reviewed(1), 4, NOW)
    assert result.ease_factor == pytest.approx(2.5)
    assert result.interval == 6


def test_partial_day_rounds_up_to_one_day():
    state = ReviewState(
        word_id=1,
        incorrect_count=1,
        last_reviewed=NOW - timedelta(hours=2),
        next_review=NOW - timedelta(hours=1),
    )
    assert calculate_next_review(state, 3, NOW).interval == 6


def test_zero_length_previous_interval_treated_as_one_day():
    state = ReviewState(word_id=1, correct_count=1, last_reviewed=NOW, next_review=NOW)
    assert calculate_next_review(state, 5, NOW).interval == 6


@pytest.mark.parametrize("state", [s for s in PRIOR_STATES if s is not None and not s.is_new])
@pytest.mark.parametrize("quality", [0, 1, 2, 2.99])
def test_failed_recall_resets_to_one_day(state, quality):
    assert calculate_next_review(state, quality, NOW).interval == 1


@pytest.mark.parametrize("state", PRIOR_STATES)
@pytest.mark.parametrize("high", [4, 4.5, 5])
@pytest.mark.parametrize("low", [0, 1, 2])
def test_better_recall_means_longer_interval(state, high, low):
    assert (
        calculate_next_review(state, high, NOW).interval
        > calculate_next_review(state, low, NOW).interval
    )


def test_ease_factor_stays_in_range_over_many_reviews():
    qualities = [5, 5, 5, 5, 5, 5, 5, 5, 0, 0, 0, 0, 0, 0, 0, 3, 4, 1, 5, 2, 0, 5, 5]
    state = None
    now = NOW
    for q in qualities:
        result = calculate_next_review(state, q, now)
        assert 1.3 <= result.ease_factor <= 3.0
        state = apply_schedule(state, 1, q, result, now)
        assert state.next_review >= state.last_reviewed
        now = result.next_review
    assert state.total_reviews == len(qualities)


def test_ease_factor_clamped_at_both_ends():
    assert next_ease_factor(3.0, 5) == 3.0
    assert next_ease_factor(1.3, 0) == 1.3
    assert next_ease_factor(2.5, 0) == pytest.approx(1.7)


# --- Quality handling ---


@pytest.mark.parametrize("raw,clamped", [(-3, 0), (0, 0), (2.5, 2.5), (5, 5), (11, 5)])
def test_quality_is_clamped(raw, clamped):
    assert clamp_quality(raw) == clamped


def test_out_of_range_quality_behaves_like_boundary():
    assert calculate_next_review(reviewed(6), 9, NOW) == calculate_next_review(
        reviewed(6), 5, NOW
    )
    assert calculate_next_review(None, -4, NOW).interval == 1


@pytest.mark.parametrize("bad", ["good", None, float("nan"), True])
def test_non_numeric_quality_rejected(bad):
    with pytest.raises(ValidationError):
        calculate_next_review(None, bad, NOW)


def test_round_half_up_differs_from_bankers_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(15.6) == 16
    assert round_half_up(7.4) == 7


# --- apply_schedule ---


def test_apply_schedule_counts_passing_quality_as_correct():
    result = calculate_next_review(None, 3, NOW)
    state = apply_schedule(None, 7, 3, result, NOW)
    assert state.word_id == 7
    assert (state.correct_count, state.incorrect_count) == (1, 0)
    assert state.last_reviewed == NOW
    assert state.next_review == result.next_review

    result = calculate_next_review(state, 1, NOW)
    state = apply_schedule(state, 7, 1, result, NOW)
    assert (state.correct_count, state.incorrect_count) == (1, 1)


# --- Binary path ---


def test_outcome_correct_on_fresh_item():
    state = apply_outcome(None, 4, True, NOW)
    assert state.word_id == 4
    assert state.correct_count == 1
    assert state.ease_factor == pytest.approx(2.6)
    assert state.next_review == NOW + timedelta(days=3)  # round(1 * 2.6)
    assert state.last_reviewed == NOW


def test_outcome_correct_scales_with_correct_count():
    state = ReviewState(word_id=1, correct_count=2, last_reviewed=NOW, next_review=NOW)
    updated = apply_outcome(state, 1, True, NOW)
    assert updated.correct_count == 3
    assert updated.next_review == NOW + timedelta(days=8)  # round(3 * 2.6)


def test_outcome_incorrect_retries_in_an_hour():
    state = apply_outcome(None, 1, False, NOW)
    assert state.incorrect_count == 1
    assert state.correct_count == 0
    assert state.ease_factor == pytest.approx(2.3)
    assert state.next_review == NOW + timedelta(hours=1)


def test_outcome_ease_clamped():
    high = ReviewState(word_id=1, ease_factor=2.95)
    low = ReviewState(word_id=1, ease_factor=1.4)
    assert apply_outcome(high, 1, True, NOW).ease_factor == 3.0
    assert apply_outcome(low, 1, False, NOW).ease_factor == 1.3


# --- Healing ---


def test_heal_resets_schedule_when_due_before_last_review():
    broken = ReviewState(
        word_id=3,
        correct_count=4,
        incorrect_count=2,
        last_reviewed=NOW,
        next_review=NOW - timedelta(days=2),
        ease_factor=1.9,
    )
    healed = heal_state(broken, NOW)
    assert healed.is_new
    assert healed.next_review == NOW
    assert healed.ease_factor == 2.5
    assert (healed.correct_count, healed.incorrect_count) == (4, 2)


def test_heal_clamps_ease(caplog):
    healed = heal_state(ReviewState(word_id=1, ease_factor=4.2), NOW)
    assert healed.ease_factor == 3.0
    assert "ease_factor" in caplog.text


def test_heal_leaves_valid_state_untouched():
    state = reviewed(6)
    assert heal_state(state, NOW) is state


def test_heal_strict_raises():
    broken = ReviewState(
        word_id=9, last_reviewed=NOW, next_review=NOW - timedelta(seconds=1)
    )
    with pytest.raises(StateInconsistencyError) as exc:
        heal_state(broken, NOW, strict=True)
    assert exc.value.word_id == 9
