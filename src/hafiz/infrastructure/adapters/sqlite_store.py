"""
SQLite Record Store: Infrastructure adapter for a local single-file database.

Schema:
- vocabulary: one row per VocabularyItem (list fields JSON-encoded)
- progress: one ReviewState per word, indexed on next_review
- settings: key/value pairs, values JSON-encoded
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from hafiz.domain.errors import StoreError
from hafiz.domain.models import ReviewState, VocabularyItem
from hafiz.domain.ports import RecordStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS vocabulary (
    id INTEGER PRIMARY KEY,
    word TEXT NOT NULL,
    transliteration TEXT NOT NULL DEFAULT '',
    translation TEXT NOT NULL DEFAULT '',
    difficulty TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '[]',
    examples TEXT NOT NULL DEFAULT '[]',
    etymology TEXT,
    audio_url TEXT
);
CREATE INDEX IF NOT EXISTS idx_vocabulary_difficulty ON vocabulary (difficulty);

CREATE TABLE IF NOT EXISTS progress (
    word_id INTEGER PRIMARY KEY,
    correct_count INTEGER NOT NULL DEFAULT 0,
    incorrect_count INTEGER NOT NULL DEFAULT 0,
    last_reviewed TEXT NOT NULL,
    next_review TEXT NOT NULL,
    ease_factor REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_progress_next_review ON progress (next_review);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""


def encode_timestamp(dt: datetime) -> str:
    # Fixed-width UTC text so string order matches time order in the index.
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def decode_timestamp(raw: str) -> datetime:
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class SqliteRecordStore(RecordStore):
    """
    RecordStore backed by sqlite3.

    The connection is opened lazily and reused; every write runs in its own
    transaction. Any sqlite3.Error is re-raised as StoreError.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    # ---------- Connection handling ----------

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                if isinstance(self.db_path, Path):
                    self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self.db_path))
                conn.row_factory = sqlite3.Row
                conn.executescript(SCHEMA)
            except (sqlite3.Error, OSError) as e:
                raise StoreError(f"Could not open database {self.db_path}: {e}") from e
            logger.debug(f"Opened record store at {self.db_path}")
            self._conn = conn
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connection()
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Database write failed: {e}") from e

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Database read failed: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> SqliteRecordStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ---------- Row mapping ----------

    @staticmethod
    def _row_to_state(row: sqlite3.Row) -> ReviewState:
        return ReviewState(
            word_id=row["word_id"],
            correct_count=row["correct_count"],
            incorrect_count=row["incorrect_count"],
            last_reviewed=decode_timestamp(row["last_reviewed"]),
            next_review=decode_timestamp(row["next_review"]),
            ease_factor=row["ease_factor"],
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> VocabularyItem:
        return VocabularyItem(
            id=row["id"],
            word=row["word"],
            transliteration=row["transliteration"],
            translation=row["translation"],
            difficulty=row["difficulty"],
            tags=json.loads(row["tags"]),
            examples=json.loads(row["examples"]),
            etymology=row["etymology"],
            audio_url=row["audio_url"],
        )

    # ---------- Review states ----------

    async def get_review_state(self, word_id: int) -> ReviewState | None:
        rows = self._query("SELECT * FROM progress WHERE word_id = ?", (word_id,))
        return self._row_to_state(rows[0]) if rows else None

    async def put_review_state(self, state: ReviewState) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO progress "
                "(word_id, correct_count, incorrect_count, last_reviewed, next_review, ease_factor) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    state.word_id,
                    state.correct_count,
                    state.incorrect_count,
                    encode_timestamp(state.last_reviewed),
                    encode_timestamp(state.next_review),
                    state.ease_factor,
                ),
            )

    async def list_review_states(self) -> list[ReviewState]:
        rows = self._query("SELECT * FROM progress ORDER BY word_id ASC")
        return [self._row_to_state(r) for r in rows]

    async def query_due(self, now: datetime, limit: int) -> list[ReviewState]:
        rows = self._query(
            "SELECT * FROM progress WHERE next_review <= ? "
            "ORDER BY next_review ASC, word_id ASC LIMIT ?",
            (encode_timestamp(now), limit),
        )
        return [self._row_to_state(r) for r in rows]

    # ---------- Vocabulary ----------

    async def get_vocabulary_item(self, item_id: int) -> VocabularyItem | None:
        rows = self._query("SELECT * FROM vocabulary WHERE id = ?", (item_id,))
        return self._row_to_item(rows[0]) if rows else None

    async def add_vocabulary_items(self, items: list[VocabularyItem]) -> int:
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO vocabulary "
                "(id, word, transliteration, translation, difficulty, tags, examples, "
                "etymology, audio_url) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        item.id,
                        item.word,
                        item.transliteration,
                        item.translation,
                        item.difficulty,
                        json.dumps(item.tags, ensure_ascii=False),
                        json.dumps(item.examples, ensure_ascii=False),
                        item.etymology,
                        item.audio_url,
                    )
                    for item in items
                ],
            )
        return len(items)

    async def find_vocabulary(
        self,
        difficulty: str | None = None,
        tag: str | None = None,
        limit: int = 20,
    ) -> list[VocabularyItem]:
        if limit <= 0:
            return []
        if difficulty is not None:
            rows = self._query(
                "SELECT * FROM vocabulary WHERE difficulty = ? ORDER BY id ASC", (difficulty,)
            )
        else:
            rows = self._query("SELECT * FROM vocabulary ORDER BY id ASC")

        # Tags live in a JSON column; filter here rather than rely on the json1 extension.
        matches: list[VocabularyItem] = []
        for row in rows:
            item = self._row_to_item(row)
            if tag is None or tag in item.tags:
                matches.append(item)
                if len(matches) >= limit:
                    break
        return matches

    async def count_vocabulary(self) -> int:
        return self._query("SELECT COUNT(*) AS n FROM vocabulary")[0]["n"]

    # ---------- Settings ----------

    async def get_setting(self, key: str) -> Any | None:
        rows = self._query("SELECT value FROM settings WHERE key = ?", (key,))
        if not rows or rows[0]["value"] is None:
            return None
        return json.loads(rows[0]["value"])

    async def put_setting(self, key: str, value: Any) -> None:
        await self.put_settings({key: value})

    async def put_settings(self, values: dict[str, Any]) -> None:
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                [(k, json.dumps(v, ensure_ascii=False)) for k, v in values.items()],
            )
