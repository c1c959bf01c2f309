"""
RefID registry: the single source of truth for who owns a RefID.

The registry is one JSON object, canonical RefID -> entry, stored as a
single blob under one key of a KeyValueStore:

    {
      "FIL-26AB3K9XQ2-S": {
        "kind": "FIL",
        "id": "pfile-1739959200000-k3x9qa",
        "projectId": "req-1",
        "createdAt": "2026-02-19T10:00:00Z"
      }
    }

Every operation reads the whole map and every write persists the whole
map. Writes happen inside ``store.transaction()``; with a SQLite store
that makes register_if_absent atomic across processes, with the JSON file
store only across threads.

Entries are created once and never changed or removed. Deleting the
entity a RefID points at leaves its entry in place, so a retired RefID is
never handed out again.

Public API:
    - RefIdRegistry: Registry bound to a store
    - REGISTRY_STORAGE_KEY: Default storage key
    - DEFAULT_MAX_ATTEMPTS: Allocation attempts before giving up

Example:
    >>> from byggref.core.storage import MemoryKeyValueStore
    >>> registry = RefIdRegistry(MemoryKeyValueStore())
    >>> ref_id = registry.allocate("FIL", "file-1", project_id="req-1")
    >>> registry.find_entity("req-1", ref_id).id
    'file-1'
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from byggref.core.refid.exceptions import RefIdAllocationError
from byggref.core.refid.generator import candidate_factory as default_candidate_factory
from byggref.core.refid.models import (
    EntityRef,
    RefIdKind,
    RegistrationResult,
    RegistryEntry,
)
from byggref.core.refid.parser import normalize_ref_id
from byggref.core.refid.validate import validate_ref_id

if TYPE_CHECKING:
    from byggref.core.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

REGISTRY_STORAGE_KEY = "byggplattformen-refid-registry-v1"

DEFAULT_MAX_ATTEMPTS = 24


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefIdRegistry:
    """
    Allocates, registers and resolves RefIDs against a key-value store.

    Construct one per process or session and pass it to whatever needs it
    (record stores, the CLI).
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str = REGISTRY_STORAGE_KEY,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize RefIdRegistry.

        Args:
            store: Backing key-value store
            storage_key: Key holding the registry blob
            max_attempts: Default attempt budget for allocate()
            clock: Source of entry timestamps (defaults to UTC now)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.storage_key = storage_key
        self.max_attempts = max_attempts
        self._clock = clock or _utc_now

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_raw(self) -> dict[str, Any]:
        """Read the whole registry map; a corrupt blob reads as empty."""
        raw = self.store.get(self.storage_key)
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse RefID registry %s: %s", self.storage_key, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("RefID registry %s is not a JSON object, ignoring", self.storage_key)
            return {}
        return data

    def _write_raw(self, data: dict[str, Any]) -> None:
        self.store.set(self.storage_key, json.dumps(data, ensure_ascii=False))

    @staticmethod
    def _to_entry(ref_id: str, raw: Any) -> RegistryEntry | None:
        try:
            return RegistryEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning("Ignoring malformed registry entry %s: %s", ref_id, e)
            return None

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_entry(self, ref_id: str) -> RegistryEntry | None:
        """
        Look up the entry for a RefID.

        Args:
            ref_id: RefID in any presentation normalize_ref_id accepts

        Returns:
            The entry, or None if the RefID is not registered
        """
        normalized = normalize_ref_id(ref_id)
        raw = self._read_raw().get(normalized)
        if raw is None:
            return None
        return self._to_entry(normalized, raw)

    def __contains__(self, ref_id: object) -> bool:
        if not isinstance(ref_id, str):
            return False
        return normalize_ref_id(ref_id) in self._read_raw()

    def list_entries(self) -> list[tuple[str, RegistryEntry]]:
        """
        List every well-formed entry, oldest first.

        Returns:
            (canonical RefID, entry) pairs
        """
        entries = []
        for ref_id, raw in self._read_raw().items():
            entry = self._to_entry(ref_id, raw)
            if entry is not None:
                entries.append((ref_id, entry))
        entries.sort(key=lambda pair: pair[1].created_at)
        return entries

    def find_entity(self, project_id: str, ref_id: str) -> EntityRef | None:
        """
        Resolve a RefID to the entity that owns it, within a project.

        An entry scoped to a different project is reported as not found;
        unscoped entries are visible from every project.

        Args:
            project_id: The caller's project
            ref_id: RefID to resolve

        Returns:
            EntityRef, or None if the RefID is invalid, unknown or out of scope
        """
        normalized = normalize_ref_id(ref_id)
        if not validate_ref_id(normalized):
            return None

        entry = self.get_entry(normalized)
        if entry is None:
            return None
        if entry.project_id and entry.project_id != project_id:
            return None

        return EntityRef(kind=entry.kind, id=entry.id, project_id=entry.project_id)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_if_absent(
        self, ref_id: str, entry: RegistryEntry
    ) -> tuple[RegistryEntry | None, bool]:
        """
        Insert an entry unless the RefID already has one.

        The read and the write happen in one store transaction. An entry
        that exists but cannot be parsed still counts as present and is
        never overwritten.

        Args:
            ref_id: Canonical, valid RefID
            entry: Entry to insert

        Returns:
            (entry now stored under ref_id, whether this call inserted it).
            The stored entry is None only when the existing one is malformed.
        """
        with self.store.transaction():
            data = self._read_raw()
            if ref_id in data:
                return self._to_entry(ref_id, data[ref_id]), False

            data[ref_id] = entry.to_storage_dict()
            self._write_raw(data)
            return entry, True

    def register(
        self,
        ref_id: str,
        kind: RefIdKind | str,
        entity_id: str,
        project_id: str | None = None,
        workspace_id: str | None = None,
    ) -> RegistrationResult:
        """
        Register a RefID for an entity.

        - Invalid RefID: ``ok=False`` with no ``existing``.
        - Unregistered RefID: a new entry is stored, ``ok=True``.
        - Already owned by the same (kind, entity_id): ``ok=True`` with the
          existing entry; nothing is written.
        - Owned by someone else: ``ok=False`` with their entry. Never
          overwritten.
        - Held by an entry that cannot be read: ``ok=False`` with
          ``malformed_existing`` set. The entry is left as stored.

        Args:
            ref_id: RefID in any presentation normalize_ref_id accepts
            kind: Namespace of the entity
            entity_id: Caller-defined entity id
            project_id: Optional project scope for find_entity
            workspace_id: Optional workspace label

        Returns:
            RegistrationResult with the canonical RefID
        """
        kind = RefIdKind(kind)
        normalized = normalize_ref_id(ref_id)
        if not validate_ref_id(normalized):
            return RegistrationResult(ok=False, ref_id=normalized)

        entry = RegistryEntry(
            kind=kind,
            id=entity_id,
            project_id=project_id,
            workspace_id=workspace_id,
            created_at=self._clock(),
        )
        stored, inserted = self.register_if_absent(normalized, entry)

        if inserted:
            logger.debug("Registered %s for %s %s", normalized, kind.value, entity_id)
            return RegistrationResult(ok=True, ref_id=normalized)

        if stored is not None and stored.owned_by(kind, entity_id):
            return RegistrationResult(ok=True, ref_id=normalized, existing=stored)

        logger.debug("RefID collision on %s (wanted by %s %s)", normalized, kind.value, entity_id)
        return RegistrationResult(
            ok=False,
            ref_id=normalized,
            existing=stored,
            malformed_existing=stored is None,
        )

    def allocate(
        self,
        kind: RefIdKind | str,
        entity_id: str,
        project_id: str | None = None,
        workspace_id: str | None = None,
        date: datetime | None = None,
        max_attempts: int | None = None,
        candidate_factory: Callable[[], str] | None = None,
    ) -> str:
        """
        Reserve a fresh RefID for an entity.

        Candidates come from ``candidate_factory`` if given, otherwise from
        the generator. The first candidate that registers successfully is
        returned, so at most ``max_attempts`` candidates are drawn.

        Args:
            kind: Namespace of the entity
            entity_id: Caller-defined entity id
            project_id: Optional project scope
            workspace_id: Optional workspace label (also tags generated bodies)
            date: Date for generated year fragments (defaults to now)
            max_attempts: Attempt budget (defaults to the registry's)
            candidate_factory: Zero-argument callable producing candidates

        Returns:
            The canonical RefID now registered to the entity

        Raises:
            RefIdAllocationError: If every attempt failed
        """
        kind = RefIdKind(kind)
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        factory = candidate_factory or default_candidate_factory(
            kind, workspace_id=workspace_id, date=date
        )

        for attempt in range(1, attempts + 1):
            result = self.register(
                factory(),
                kind,
                entity_id,
                project_id=project_id,
                workspace_id=workspace_id,
            )
            if result.ok:
                logger.info(
                    "Allocated %s for %s %s (attempt %d)",
                    result.ref_id,
                    kind.value,
                    entity_id,
                    attempt,
                )
                return result.ref_id

        logger.error(
            "RefID allocation for %s %s failed after %d attempts",
            kind.value,
            entity_id,
            attempts,
        )
        raise RefIdAllocationError(kind.value, attempts)

    def ensure_registered(
        self,
        existing_ref_id: str | None,
        kind: RefIdKind | str,
        entity_id: str,
        project_id: str | None = None,
        workspace_id: str | None = None,
    ) -> str:
        """
        Return a RefID registered to the entity, keeping the old one if possible.

        A caller-held RefID (e.g. read back from a stored record) is
        registered as-is first. Only if there is none, or it is invalid or
        owned by someone else, is a fresh one allocated.

        Returns:
            The canonical RefID registered to the entity

        Raises:
            RefIdAllocationError: If a fresh RefID was needed and none could be reserved
        """
        if existing_ref_id:
            result = self.register(
                existing_ref_id,
                kind,
                entity_id,
                project_id=project_id,
                workspace_id=workspace_id,
            )
            if result.ok:
                return result.ref_id
            logger.debug("Replacing unusable RefID %r for %s", existing_ref_id, entity_id)

        return self.allocate(kind, entity_id, project_id=project_id, workspace_id=workspace_id)
