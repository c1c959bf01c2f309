"""
Key-value backing stores.

Public API:
    - KeyValueStore: Protocol every backend implements
    - MemoryKeyValueStore: Process-local dict
    - JsonFileKeyValueStore: One JSON file, atomic writes
    - SqliteKeyValueStore: SQLite table, cross-process transactions
    - StorageError: Backend failure
    - open_store: Build the configured backend (byggref.core.storage.factory)
"""

from byggref.core.storage.base import KeyValueStore, StorageError
from byggref.core.storage.json_file import JsonFileKeyValueStore
from byggref.core.storage.memory import MemoryKeyValueStore
from byggref.core.storage.sqlite import SqliteKeyValueStore

__all__ = [
    "KeyValueStore",
    "StorageError",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "SqliteKeyValueStore",
]
