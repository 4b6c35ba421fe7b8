# Domain Package
from .errors import HafizError, StateInconsistencyError, StoreError, ValidationError
from .models import (
    AggregateStats,
    DailyProgressEntry,
    ReviewState,
    ScheduleResult,
    VocabularyItem,
)
from .ports import RecordStore

__all__ = [
    "AggregateStats",
    "DailyProgressEntry",
    "ReviewState",
    "ScheduleResult",
    "VocabularyItem",
    "RecordStore",
    "HafizError",
    "ValidationError",
    "StoreError",
    "StateInconsistencyError",
]
