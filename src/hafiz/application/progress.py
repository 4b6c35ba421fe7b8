"""
Progress tracker: aggregate statistics, daily history and streaks.

`fold_outcome` is the pure state transition; `ProgressTracker` persists its
result through the store's settings keys.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any

from hafiz.domain.constants import (
    CORRECT_ANSWERS_PER_LEARNED_WORD,
    DEFAULT_HISTORY_DAYS,
    HISTORY_RETENTION_DAYS,
    KEY_CORRECT_ANSWERS,
    KEY_INCORRECT_ANSWERS,
    KEY_LAST_REVIEW_DATE,
    KEY_LEARNED_WORDS,
    KEY_PROGRESS_HISTORY,
    KEY_REVIEWS_TODAY,
    KEY_REVIEWS_TOTAL,
    KEY_STREAK,
)
from hafiz.domain.models import AggregateStats, DailyProgressEntry
from hafiz.domain.ports import RecordStore

from .review_queue import validate_positive

logger = logging.getLogger(__name__)


# ---------- Pure fold ----------


def next_streak(last_review_date: date | None, today: date, streak: int) -> int:
    """
    Streak after a review on `today`.

    Same day: unchanged. Day after the previous review: +1. Anything else restarts at 1.
    """
    if last_review_date == today:
        return streak
    if last_review_date == today - timedelta(days=1):
        return streak + 1
    return 1


def learned_words(correct_answers: int, total_words: int) -> int:
    return min(total_words, correct_answers // CORRECT_ANSWERS_PER_LEARNED_WORD)


def upsert_history(
    history: list[DailyProgressEntry], today: date, correct: bool
) -> list[DailyProgressEntry]:
    """Count one review against today's entry, then keep the newest 30 days."""
    by_date = {entry.date: entry for entry in history}
    entry = by_date.get(today, DailyProgressEntry(date=today))
    by_date[today] = replace(
        entry,
        review_count=entry.review_count + 1,
        correct_count=entry.correct_count + (1 if correct else 0),
    )
    ordered = sorted(by_date.values(), key=lambda e: e.date, reverse=True)
    return ordered[:HISTORY_RETENTION_DAYS]


def fold_outcome(
    stats: AggregateStats,
    history: list[DailyProgressEntry],
    correct: bool,
    now: datetime,
) -> tuple[AggregateStats, list[DailyProgressEntry]]:
    """
    Apply one review outcome to the aggregate stats and daily history.

    Returns:
        The new (stats, history) pair. Inputs are not modified.
    """
    today = now.date()
    new_day = stats.last_review_date != today

    correct_answers = stats.correct_answers + (1 if correct else 0)
    updated = replace(
        stats,
        reviews_today=1 if new_day else stats.reviews_today + 1,
        reviews_total=stats.reviews_total + 1,
        correct_answers=correct_answers,
        incorrect_answers=stats.incorrect_answers + (0 if correct else 1),
        streak_days=next_streak(stats.last_review_date, today, stats.streak_days),
        last_review_date=today,
        learned_words_count=learned_words(correct_answers, stats.total_words),
    )
    return updated, upsert_history(history, today, correct)


# ---------- Settings (de)serialization ----------


def _parse_date(raw: Any) -> date | None:
    if not raw:
        return None
    try:
        # Older records stored a full timestamp; the date part is what matters.
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        logger.warning(f"Ignoring unparseable {KEY_LAST_REVIEW_DATE}: {raw!r}")
        return None


def _as_int(raw: Any) -> int:
    try:
        return max(0, int(raw or 0))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric progress counter: {raw!r}")
        return 0


def parse_history(raw: Any) -> list[DailyProgressEntry]:
    if not isinstance(raw, list):
        return []
    entries = []
    for item in raw:
        try:
            entries.append(DailyProgressEntry.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed history entry {item!r}: {e}")
    return sorted(entries, key=lambda e: e.date, reverse=True)


def stats_to_settings(
    stats: AggregateStats, history: list[DailyProgressEntry]
) -> dict[str, Any]:
    return {
        KEY_LEARNED_WORDS: stats.learned_words_count,
        KEY_REVIEWS_TODAY: stats.reviews_today,
        KEY_REVIEWS_TOTAL: stats.reviews_total,
        KEY_CORRECT_ANSWERS: stats.correct_answers,
        KEY_INCORRECT_ANSWERS: stats.incorrect_answers,
        KEY_STREAK: stats.streak_days,
        KEY_LAST_REVIEW_DATE: (
            stats.last_review_date.isoformat() if stats.last_review_date else None
        ),
        KEY_PROGRESS_HISTORY: [entry.to_dict() for entry in history],
    }


# ---------- Service ----------


class ProgressTracker:
    """
    Persists aggregate stats and daily history under well-known settings keys.

    All writes go through a single lock so concurrent reviews never lose an increment.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime]):
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()

    async def _load(self) -> tuple[AggregateStats, list[DailyProgressEntry]]:
        get = self._store.get_setting
        stats = AggregateStats(
            total_words=await self._store.count_vocabulary(),
            learned_words_count=_as_int(await get(KEY_LEARNED_WORDS)),
            reviews_today=_as_int(await get(KEY_REVIEWS_TODAY)),
            reviews_total=_as_int(await get(KEY_REVIEWS_TOTAL)),
            correct_answers=_as_int(await get(KEY_CORRECT_ANSWERS)),
            incorrect_answers=_as_int(await get(KEY_INCORRECT_ANSWERS)),
            streak_days=_as_int(await get(KEY_STREAK)),
            last_review_date=_parse_date(await get(KEY_LAST_REVIEW_DATE)),
        )
        history = parse_history(await get(KEY_PROGRESS_HISTORY))
        return stats, history

    async def record(self, correct: bool, now: datetime | None = None) -> AggregateStats:
        """
        Fold one review outcome into the persisted stats.

        Store failures propagate to the caller; nothing is retried here.
        """
        now = now or self._clock()
        async with self._lock:
            stats, history = await self._load()
            stats, history = fold_outcome(stats, history, correct, now)
            await self._store.put_settings(stats_to_settings(stats, history))

        logger.debug(
            f"Recorded {'correct' if correct else 'incorrect'} answer: "
            f"{stats.reviews_today} today, streak {stats.streak_days}"
        )
        return stats

    async def get_stats(self, now: datetime | None = None) -> AggregateStats:
        """
        Current statistics. Read-only.

        reviews_today is reported as 0 when the last review was not today.
        """
        now = now or self._clock()
        stats, _ = await self._load()
        if stats.last_review_date != now.date():
            stats = replace(stats, reviews_today=0)
        return stats

    async def get_daily_history(
        self, days: int = DEFAULT_HISTORY_DAYS
    ) -> list[DailyProgressEntry]:
        """Most recent `days` entries, newest first."""
        validate_positive("days", days)
        history = parse_history(await self._store.get_setting(KEY_PROGRESS_HISTORY))
        return history[:days]

    async def get_accuracy_percentage(self) -> int:
        stats, _ = await self._load()
        return stats.accuracy_percentage

    async def reset_daily_progress(self) -> None:
        """Zero today's review counter (the midnight rollover)."""
        async with self._lock:
            await self._store.put_setting(KEY_REVIEWS_TODAY, 0)
        logger.info("Daily review counter reset")
