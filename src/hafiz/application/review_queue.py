"""
Review queue: which vocabulary items are due, in presentation order.

Ordering is earliest-due first, ties broken by item id.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from hafiz.domain.constants import DEFAULT_DUE_LIMIT
from hafiz.domain.errors import ValidationError
from hafiz.domain.models import VocabularyItem
from hafiz.domain.ports import RecordStore

logger = logging.getLogger(__name__)


def validate_positive(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {value!r}")
    return value


class ReviewQueue:
    """
    Read-only selector over the store's due-date index.

    `now` is always an explicit input (defaulting to the clock), so callers that
    track pauses or idle time pass their own reference timestamp.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], datetime]):
        self._store = store
        self._clock = clock

    async def get_due_items(
        self, limit: int = DEFAULT_DUE_LIMIT, now: datetime | None = None
    ) -> list[VocabularyItem]:
        """
        Return up to `limit` vocabulary items whose next review is at or before `now`.

        Args:
            limit: Maximum number of items; must be positive.
            now: Reference time; defaults to the engine clock.

        Returns:
            Items ordered by next_review ascending, then id. Empty if nothing is due.
        """
        validate_positive("limit", limit)
        now = now or self._clock()

        items: list[VocabularyItem] = []
        seen = 0
        fetch = limit
        while True:
            states = await self._store.query_due(now, fetch)
            # Never hand out a future item, whatever the store returns.
            due = sorted(
                (s for s in states if s.next_review <= now),
                key=lambda s: (s.next_review, s.word_id),
            )
            fresh = due[seen:]
            for state in fresh:
                seen += 1
                item = await self._store.get_vocabulary_item(state.word_id)
                if item is None:
                    logger.warning(
                        f"Review state for word {state.word_id} has no vocabulary item"
                    )
                    continue
                items.append(item)
                if len(items) == limit:
                    break

            if len(items) >= limit or len(states) < fetch or not fresh:
                break
            # Orphans used up slots; ask again for enough rows to fill the remainder.
            fetch = seen + (limit - len(items))

        logger.debug(f"{len(items)} due item(s) at {now.isoformat()}")
        return items

    async def count_due(self, now: datetime | None = None) -> int:
        """Count every due review state, regardless of any presentation limit."""
        now = now or self._clock()
        states = await self._store.list_review_states()
        return sum(1 for s in states if s.next_review <= now)
