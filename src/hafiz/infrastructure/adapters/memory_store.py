"""
In-memory record store.

Dict-backed implementation of RecordStore. Nothing survives the process;
used by the test suite and by `--backend memory` sessions.
"""

import copy
from datetime import datetime
from typing import Any

from hafiz.domain.models import ReviewState, VocabularyItem
from hafiz.domain.ports import RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Keeps vocabulary, review states and settings in plain dicts.

    Settings values are deep-copied on the way in and out so callers can never
    mutate stored data by accident, matching a real backend's behavior.
    """

    def __init__(self, items: list[VocabularyItem] | None = None):
        self.vocabulary: dict[int, VocabularyItem] = {}
        self.states: dict[int, ReviewState] = {}
        self.settings: dict[str, Any] = {}
        for item in items or []:
            self.vocabulary[item.id] = item

    async def get_review_state(self, word_id: int) -> ReviewState | None:
        return self.states.get(word_id)

    async def put_review_state(self, state: ReviewState) -> None:
        self.states[state.word_id] = state

    async def list_review_states(self) -> list[ReviewState]:
        return [self.states[k] for k in sorted(self.states)]

    async def query_due(self, now: datetime, limit: int) -> list[ReviewState]:
        due = [s for s in self.states.values() if s.next_review <= now]
        due.sort(key=lambda s: (s.next_review, s.word_id))
        return due[:limit]

    async def get_vocabulary_item(self, item_id: int) -> VocabularyItem | None:
        return self.vocabulary.get(item_id)

    async def add_vocabulary_items(self, items: list[VocabularyItem]) -> int:
        for item in items:
            self.vocabulary[item.id] = item
        return len(items)

    async def find_vocabulary(
        self,
        difficulty: str | None = None,
        tag: str | None = None,
        limit: int = 20,
    ) -> list[VocabularyItem]:
        matches = [
            item
            for _, item in sorted(self.vocabulary.items())
            if (difficulty is None or item.difficulty == difficulty)
            and (tag is None or tag in item.tags)
        ]
        return matches[: max(0, limit)]

    async def count_vocabulary(self) -> int:
        return len(self.vocabulary)

    async def get_setting(self, key: str) -> Any | None:
        return copy.deepcopy(self.settings.get(key))

    async def put_setting(self, key: str, value: Any) -> None:
        self.settings[key] = copy.deepcopy(value)
