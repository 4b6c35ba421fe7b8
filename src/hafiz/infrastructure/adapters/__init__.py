# Storage Adapters Package
from .memory_store import InMemoryRecordStore
from .sqlite_store import SqliteRecordStore

__all__ = ["InMemoryRecordStore", "SqliteRecordStore"]
