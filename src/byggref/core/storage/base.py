"""
Key-value store protocol.

Record stores and the RefID registry persist whole JSON blobs under
well-known keys, the way a browser app uses localStorage. ``transaction``
groups a read-modify-write; how strong that grouping is depends on the
backend (see each implementation).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable


class StorageError(Exception):
    """Error from key-value store operations."""

    pass


@runtime_checkable
class KeyValueStore(Protocol):
    """String-to-string store with whole-value reads and writes."""

    def get(self, key: str) -> str | None:
        """Return the value stored under key, or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...

    def keys(self) -> Iterator[str]:
        """Iterate over stored keys."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Group reads and writes into one unit of work."""
        ...
