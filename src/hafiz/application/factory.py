"""
Record Store Factory
Centralizes the logic for selecting the appropriate storage adapter.
"""

from hafiz.application.config import AppConfig
from hafiz.application.engine import ReviewEngine
from hafiz.domain.ports import RecordStore
from hafiz.infrastructure.adapters.memory_store import InMemoryRecordStore
from hafiz.infrastructure.adapters.sqlite_store import SqliteRecordStore


def get_record_store(config: AppConfig) -> RecordStore:
    """
    Returns the RecordStore implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryRecordStore()
    return SqliteRecordStore(config.db_path)


def get_review_engine(config: AppConfig, store: RecordStore | None = None) -> ReviewEngine:
    return ReviewEngine(
        store or get_record_store(config),
        track_progress=config.track_progress,
    )
