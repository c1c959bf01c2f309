"""In-memory key-value store."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class MemoryKeyValueStore:
    """
    Dict-backed store, mainly for tests and one-off CLI runs.

    Transactions hold a re-entrant lock, so they are atomic between threads
    of one process and meaningless across processes.

    Example:
        >>> store = MemoryKeyValueStore()
        >>> store.set("k", "v")
        >>> store.get("k")
        'v'
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def clear(self) -> None:
        """Remove every key."""
        with self._lock:
            self._data.clear()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield
