"""
JSON file key-value store.

All keys live in one JSON object on disk, e.g. ``.byggref/store.json``:

    {
      "byggplattformen-refid-registry-v1": "{\\"FIL-26AB3K9XQ2-S\\": {...}}",
      "byggplattformen-documents": "[...]"
    }

Every write rewrites the whole file atomically (temp file + replace).
Transactions only serialize threads of this process; two processes
writing the same file can still lose updates. Use SqliteKeyValueStore
when that matters.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from byggref.core.storage.base import StorageError

logger = logging.getLogger(__name__)


class JsonFileKeyValueStore:
    """
    Store backed by a single JSON file.

    Example:
        >>> store = JsonFileKeyValueStore(Path(".byggref/store.json"))
        >>> store.set("greeting", "hej")
        >>> store.get("greeting")
        'hej'
    """

    def __init__(self, path: Path | str) -> None:
        """
        Initialize JsonFileKeyValueStore.

        Args:
            path: Path to the JSON file (created on first write)
        """
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        """Get the path to the backing JSON file."""
        return self._path

    def _read_all(self) -> dict[str, str]:
        """Read and parse the whole file."""
        if not self._path.exists():
            return {}

        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise StorageError(f"Failed to parse {self._path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Expected a JSON object in {self._path}")
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        """Write the whole file atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".store_",
            suffix=".json.tmp",
        )

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")

            os.replace(temp_path, self._path)

        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        logger.debug("Wrote %d keys to %s", len(data), self._path)

    def get(self, key: str) -> str | None:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)

    def keys(self) -> Iterator[str]:
        return iter(list(self._read_all()))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield
