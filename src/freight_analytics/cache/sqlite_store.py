"""SQLite-backed key-value store for caches that survive restarts."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterator, Optional

from freight_analytics.domain.exceptions import CacheWriteError
from freight_analytics.domain.interfaces import IKeyValueStore

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_UPSERT_SQL = """
INSERT INTO kv (key, value)
VALUES (?, ?)
ON CONFLICT(key) DO UPDATE SET
    value=excluded.value;
"""

_SELECT_SQL = "SELECT value FROM kv WHERE key = ?;"

_DELETE_SQL = "DELETE FROM kv WHERE key = ?;"

_SELECT_KEYS_SQL = "SELECT key FROM kv ORDER BY key ASC;"


class SQLiteStore(IKeyValueStore):
    """Lightweight store focused on persistence only; expiry lives above it."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._db_path = str(db_path)
        self._timeout = timeout
        self._logger = logger or logging.getLogger(__name__)
        self._ensure_schema()

    def get(self, key: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute(_SELECT_SQL, (key,)).fetchone()
        except sqlite3.Error:
            self._logger.warning("cache_read_failed", extra={"key": key}, exc_info=True)
            return None
        return row[0] if row else None

    def put(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(_UPSERT_SQL, (key, value))
                conn.commit()
        except sqlite3.Error as exc:
            raise CacheWriteError(
                "SQLite cache write failed", context={"key": key}
            ) from exc

    def delete(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(_DELETE_SQL, (key,))
                conn.commit()
        except sqlite3.Error as exc:
            raise CacheWriteError(
                "SQLite cache delete failed", context={"key": key}
            ) from exc

    def keys(self) -> Iterator[str]:
        try:
            with self._connect() as conn:
                rows = conn.execute(_SELECT_KEYS_SQL).fetchall()
        except sqlite3.Error:
            self._logger.warning("cache_keys_failed", exc_info=True)
            return iter([])
        return iter([row[0] for row in rows])

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, timeout=self._timeout)

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_TABLE_SQL)
            conn.commit()
