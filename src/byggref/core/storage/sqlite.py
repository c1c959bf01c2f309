"""
SQLite key-value store.

A single ``kv`` table in WAL mode. ``transaction()`` opens a
``BEGIN IMMEDIATE`` transaction, which takes the database write lock up
front: a registry read-modify-write inside it cannot interleave with
another process doing the same, so two writers can never both see a
RefID as free.

Usage:
    store = SqliteKeyValueStore(Path(".byggref/store.db"))
    with store.transaction():
        current = store.get("counter")
        store.set("counter", str(int(current or "0") + 1))
    store.close()
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from byggref.core.storage.base import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteKeyValueStore:
    """Store backed by a SQLite database file (or ``":memory:"``)."""

    def __init__(self, path: Path | str, timeout: float = 5.0) -> None:
        """
        Open (and create if needed) the database.

        Args:
            path: Database file path, or ":memory:"
            timeout: Seconds to wait for another writer's lock

        Raises:
            StorageError: If the database cannot be opened
        """
        self._path = str(path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        try:
            # Autocommit mode; transactions are opened explicitly
            self._conn = sqlite3.connect(
                self._path,
                timeout=timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute(SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open {self._path}: {e}")

        self._lock = threading.RLock()
        self._depth = 0

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def keys(self) -> Iterator[str]:
        rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        return iter([row[0] for row in rows])

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._depth > 0:
                # Nested: already inside the outer BEGIN IMMEDIATE
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.OperationalError as e:
                raise StorageError(f"Could not lock {self._path}: {e}")

            self._depth = 1
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                logger.debug("Rolled back transaction on %s", self._path)
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth = 0

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
