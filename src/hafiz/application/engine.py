"""
Review engine: application layer orchestrator.

Coordinates the scheduler, the record store, the progress tracker and the
review queue behind the operations UI callers use.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from hafiz.domain.constants import (
    DEFAULT_DUE_LIMIT,
    DEFAULT_HISTORY_DAYS,
    HISTORY_RETENTION_DAYS,
    PASSING_QUALITY,
)
from hafiz.domain.errors import ValidationError
from hafiz.domain.models import (
    AggregateStats,
    DailyProgressEntry,
    ReviewState,
    ScheduleResult,
    VocabularyItem,
)
from hafiz.domain.ports import RecordStore

from . import scheduler
from .progress import ProgressTracker
from .review_queue import ReviewQueue

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Timezone-aware current time in the local zone; calendar days follow it."""
    return datetime.now().astimezone()


class ReviewEngine:
    """
    Facade over scheduling, due-item selection and progress tracking.

    Follows Dependency Inversion: depends on the RecordStore port,
    not concrete adapter implementations.

    Reviews of the same item are serialized with a per-item lock held across
    the read-modify-write of its ReviewState; different items run concurrently.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] | None = None,
        track_progress: bool = True,
    ):
        """
        Args:
            store: The record store (port) holding vocabulary, states and settings.
            clock: Returns the current aware datetime; defaults to local time.
            track_progress: Fold every review into the aggregate stats.
        """
        self._store = store
        self._clock = clock or local_now
        self._track_progress = track_progress
        self._item_locks: dict[int, asyncio.Lock] = {}
        self._lock_users: Counter[int] = Counter()
        self.queue = ReviewQueue(store, self._clock)
        self.tracker = ProgressTracker(store, self._clock)

    @property
    def store(self) -> RecordStore:
        return self._store

    @asynccontextmanager
    async def _item_lock(self, item_id: int) -> AsyncIterator[None]:
        """Hold the item's lock; the entry is dropped once nobody holds or awaits it."""
        lock = self._item_locks.setdefault(item_id, asyncio.Lock())
        self._lock_users[item_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[item_id] -= 1
            if self._lock_users[item_id] == 0:
                del self._lock_users[item_id]
                del self._item_locks[item_id]

    async def _require_item(self, item_id: int) -> VocabularyItem:
        item = await self._store.get_vocabulary_item(item_id)
        if item is None:
            raise ValidationError(f"Unknown vocabulary item: {item_id}")
        return item

    async def _load_state(self, item_id: int, now: datetime) -> ReviewState | None:
        state = await self._store.get_review_state(item_id)
        if state is None:
            return None
        return scheduler.heal_state(state, now)

    # ---------- Reviews ----------

    async def schedule_review(self, item_id: int, quality: float) -> ScheduleResult:
        """
        Record a graded review (quality 0-5) and persist the new schedule.

        Quality outside [0, 5] is clamped. A quality of 3 or more counts as a
        correct answer for the item's counters and the aggregate stats.
        """
        quality = scheduler.clamp_quality(quality)
        await self._require_item(item_id)

        async with self._item_lock(item_id):
            now = self._clock()
            state = await self._load_state(item_id, now)
            result = scheduler.calculate_next_review(state, quality, now)
            updated = scheduler.apply_schedule(state, item_id, quality, result, now)
            await self._store.put_review_state(updated)

        logger.info(
            f"Word {item_id} reviewed (quality {quality:g}): "
            f"next in {result.interval}d, ease {result.ease_factor:.2f}"
        )
        if self._track_progress:
            await self.tracker.record(quality >= PASSING_QUALITY, now)
        return result

    async def record_outcome(self, item_id: int, correct: bool) -> ReviewState:
        """Record a plain correct/incorrect answer and persist the item's new state."""
        await self._require_item(item_id)

        async with self._item_lock(item_id):
            now = self._clock()
            state = await self._load_state(item_id, now)
            updated = scheduler.apply_outcome(state, item_id, bool(correct), now)
            await self._store.put_review_state(updated)

        logger.info(
            f"Word {item_id} answered {'correctly' if correct else 'incorrectly'}: "
            f"next review {updated.next_review.isoformat()}"
        )
        if self._track_progress:
            await self.tracker.record(bool(correct), now)
        return updated

    async def get_review_state(self, item_id: int) -> ReviewState | None:
        return await self._load_state(item_id, self._clock())

    # ---------- Queries ----------

    async def get_due_items(
        self, limit: int = DEFAULT_DUE_LIMIT, now: datetime | None = None
    ) -> list[VocabularyItem]:
        return await self.queue.get_due_items(limit, now)

    async def count_due(self, now: datetime | None = None) -> int:
        return await self.queue.count_due(now)

    async def get_stats(self) -> AggregateStats:
        return await self.tracker.get_stats()

    async def get_daily_history(
        self, days: int = DEFAULT_HISTORY_DAYS
    ) -> list[DailyProgressEntry]:
        return await self.tracker.get_daily_history(days)

    async def export_data(self) -> dict[str, Any]:
        """JSON-compatible snapshot of every review state plus the progress stats."""
        now = self._clock()
        states = await self._store.list_review_states()
        stats = await self.tracker.get_stats(now)
        history = await self.tracker.get_daily_history(HISTORY_RETENTION_DAYS)
        return {
            "exportDate": now.isoformat(),
            "progress": [scheduler.heal_state(s, now).to_dict() for s in states],
            "stats": stats.to_dict(),
            "progressHistory": [entry.to_dict() for entry in history],
        }
