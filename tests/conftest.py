"""
Pytest configuration and shared fixtures.

Provides key-value stores, a registry bound to an in-memory store, a
deterministic RefID factory, and isolation from the user's config and
environment.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from byggref.core.config import loader
from byggref.core.refid import RefIdKind, RefIdRegistry, generate_ref_id
from byggref.core.storage import JsonFileKeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore

FIXED_DATE = datetime(2026, 2, 19, 10, 0, 0, tzinfo=timezone.utc)

# ==============================================================================
# Environment Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config, .env files and BYGGREF_* variables out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "BYGGREF_STORAGE_BACKEND",
        "BYGGREF_STORAGE_PATH",
        "BYGGREF_MAX_ATTEMPTS",
        "BYGGREF_WORKSPACE_ID",
    ):
        monkeypatch.delenv(name, raising=False)
    loader.clear_cache()
    yield
    loader.clear_cache()


# ==============================================================================
# Store Fixtures
# ==============================================================================


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    """Provide an empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def json_store(tmp_path: Path) -> JsonFileKeyValueStore:
    """Provide a JSON file store in a temp directory."""
    return JsonFileKeyValueStore(tmp_path / "store" / "store.json")


@pytest.fixture
def sqlite_store(tmp_path: Path):
    """Provide a SQLite store in a temp directory."""
    store = SqliteKeyValueStore(tmp_path / "store" / "store.db")
    yield store
    store.close()


@pytest.fixture
def registry(memory_store: MemoryKeyValueStore) -> RefIdRegistry:
    """Provide a registry over the in-memory store with a fixed clock."""
    return RefIdRegistry(memory_store, clock=lambda: FIXED_DATE)


# ==============================================================================
# RefID Fixtures
# ==============================================================================


@pytest.fixture
def make_ref_id() -> Callable[..., str]:
    """
    Provide a deterministic RefID factory.

    Distinct seeds give distinct RefIDs; the same seed always gives the
    same RefID.
    """

    def factory(kind: RefIdKind | str = "FIL", seed: int = 0, workspace_id: str | None = None):
        return generate_ref_id(
            kind,
            workspace_id=workspace_id,
            date=FIXED_DATE,
            random_bytes=lambda size: bytes([seed % 256] * size),
        )

    return factory
