from datetime import datetime, timedelta, timezone

import pytest

from hafiz.application.engine import ReviewEngine
from hafiz.domain.models import VocabularyItem
from hafiz.infrastructure.adapters.memory_store import InMemoryRecordStore

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock so date arithmetic is deterministic."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def _make_item(item_id: int, **overrides) -> VocabularyItem:
    fields = {
        "id": item_id,
        "word": f"word{item_id}",
        "transliteration": f"w{item_id}",
        "translation": f"meaning {item_id}",
        "difficulty": "beginner",
        "tags": ["quranic"],
    }
    fields.update(overrides)
    return VocabularyItem(**fields)


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryRecordStore([_make_item(i) for i in range(1, 6)])


@pytest.fixture
def engine(store, clock):
    return ReviewEngine(store, clock=clock)
