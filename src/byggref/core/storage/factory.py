"""Build stores and registries from configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from byggref.core.config.models import ByggrefConfig
from byggref.core.refid.registry import RefIdRegistry
from byggref.core.storage.base import KeyValueStore
from byggref.core.storage.json_file import JsonFileKeyValueStore
from byggref.core.storage.memory import MemoryKeyValueStore
from byggref.core.storage.sqlite import SqliteKeyValueStore

logger = logging.getLogger(__name__)


def open_store(config: ByggrefConfig, project_dir: Path | None = None) -> KeyValueStore:
    """
    Open the key-value store selected by ``config.storage``.

    Args:
        config: Loaded configuration
        project_dir: Base for relative store paths (defaults to cwd)

    Returns:
        A ready-to-use store
    """
    backend = config.storage.backend
    if backend == "memory":
        return MemoryKeyValueStore()

    path = config.storage.resolve_path(project_dir)
    logger.debug("Opening %s store at %s", backend, path)
    if backend == "sqlite":
        return SqliteKeyValueStore(path)
    return JsonFileKeyValueStore(path)


def open_registry(config: ByggrefConfig, store: KeyValueStore) -> RefIdRegistry:
    """Create a RefIdRegistry over ``store`` with the configured key and attempt budget."""
    return RefIdRegistry(
        store,
        storage_key=config.storage.registry_key,
        max_attempts=config.refid.max_attempts,
    )
