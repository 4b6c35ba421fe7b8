"""
Ports (interfaces) for review persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from .models import ReviewState, VocabularyItem


class RecordStore(ABC):
    """
    Port for the local record store.

    Implementations:
        - InMemoryRecordStore: dict-backed, used for tests and throwaway sessions.
        - SqliteRecordStore: durable single-file SQLite database.

    Every method raises StoreError when the backend fails.
    """

    @abstractmethod
    async def get_review_state(self, word_id: int) -> ReviewState | None:
        """Return the stored state for an item, or None if it was never reviewed."""
        pass

    @abstractmethod
    async def put_review_state(self, state: ReviewState) -> None:
        """Insert or replace the state keyed by state.word_id."""
        pass

    @abstractmethod
    async def list_review_states(self) -> list[ReviewState]:
        """Return every stored state, ordered by word_id."""
        pass

    @abstractmethod
    async def query_due(self, now: datetime, limit: int) -> list[ReviewState]:
        """
        Fetch states whose next_review is at or before `now`.

        Returns:
            At most `limit` states, ascending by next_review, ties by word_id.
        """
        pass

    @abstractmethod
    async def get_vocabulary_item(self, item_id: int) -> VocabularyItem | None:
        pass

    @abstractmethod
    async def add_vocabulary_items(self, items: list[VocabularyItem]) -> int:
        """Upsert items by id. Returns the number written."""
        pass

    @abstractmethod
    async def find_vocabulary(
        self,
        difficulty: str | None = None,
        tag: str | None = None,
        limit: int = 20,
    ) -> list[VocabularyItem]:
        """
        Return at most `limit` items matching every given filter, ordered by id.

        A non-positive limit yields an empty list.
        """
        pass

    @abstractmethod
    async def count_vocabulary(self) -> int:
        pass

    @abstractmethod
    async def get_setting(self, key: str) -> Any | None:
        pass

    @abstractmethod
    async def put_setting(self, key: str, value: Any) -> None:
        pass

    async def put_settings(self, values: dict[str, Any]) -> None:
        """
        Write several settings as one unit.

        The default writes them one by one; adapters with transactions override it.
        """
        for key, value in values.items():
            await self.put_setting(key, value)
