"""
Document store.

Documents are kept as one JSON array under DOCUMENTS_STORAGE_KEY, newest
update first. Each document carries a ``DOC`` RefID scoped to its
request. Documents saved before RefIDs existed get one on first read,
which is written back so it stays the same on every later read.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from byggref.core.documents.models import DocumentStatus, PlatformDocument
from byggref.core.files.store import next_record_id
from byggref.core.refid import EntityRef, RefIdKind, RefIdRegistry, validate_ref_id
from byggref.core.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

DOCUMENTS_STORAGE_KEY = "byggplattformen-documents"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore:
    """
    Storage layer for platform documents.

    Example:
        >>> documents = DocumentStore(MemoryKeyValueStore(), registry)
        >>> saved = documents.save_document(PlatformDocument(id="doc-1", request_id="req-1"))
        >>> documents.find_entity_by_ref_id("req-1", saved.ref_id).id
        'doc-1'
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: RefIdRegistry,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self._clock = clock or _utc_now

    def _load_raw(self) -> list[Any]:
        raw = self.store.get(DOCUMENTS_STORAGE_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse documents: %s", e)
            return []
        return data if isinstance(data, list) else []

    def _with_ref_id(self, document: PlatformDocument) -> PlatformDocument:
        existing = document.ref_id if validate_ref_id(document.ref_id) else None
        ref_id = self.registry.ensure_registered(
            existing,
            RefIdKind.DOCUMENT,
            document.id,
            project_id=document.request_id,
        )
        if ref_id == document.ref_id:
            return document
        logger.debug("Backfilled RefID %s for document %s", ref_id, document.id)
        return document.model_copy(update={"ref_id": ref_id})

    def _read_all(self) -> list[PlatformDocument]:
        documents: list[PlatformDocument] = []
        changed = False

        for entry in self._load_raw():
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                continue
            try:
                document = PlatformDocument.model_validate(entry)
            except ValidationError as e:
                logger.warning("Skipping unreadable document %s: %s", entry.get("id"), e)
                continue

            normalized = self._with_ref_id(document)
            if normalized.ref_id != document.ref_id:
                changed = True
            documents.append(normalized)

        documents.sort(key=lambda d: d.updated_at, reverse=True)
        if changed:
            self._write_all(documents)
        return documents

    def _unreadable(self) -> list[dict[str, Any]]:
        """Stored documents with an id that fail validation, exactly as stored."""
        kept = []
        for entry in self._load_raw():
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                continue
            try:
                PlatformDocument.model_validate(entry)
            except ValidationError:
                kept.append(entry)
        return kept

    def _write_all(self, documents: list[PlatformDocument]) -> None:
        ids = {document.id for document in documents}
        ordered = sorted(documents, key=lambda d: d.updated_at, reverse=True)
        payload: list[dict[str, Any]] = [document.to_storage_dict() for document in ordered]
        payload.extend(entry for entry in self._unreadable() if entry["id"] not in ids)
        self.store.set(DOCUMENTS_STORAGE_KEY, json.dumps(payload, ensure_ascii=False))

    def list_documents(self) -> list[PlatformDocument]:
        """List every document, most recently updated first."""
        return self._read_all()

    def list_documents_by_request(self, request_id: str) -> list[PlatformDocument]:
        """List the documents of one request."""
        return [doc for doc in self._read_all() if doc.request_id == request_id]

    def get_document(self, document_id: str) -> PlatformDocument | None:
        """Get a document by id."""
        for document in self._read_all():
            if document.id == document_id:
                return document
        return None

    def save_document(self, document: PlatformDocument) -> PlatformDocument:
        """
        Insert or replace a document, stamping ``updated_at``.

        The document keeps its RefID if it has a valid one that is free or
        already its own; otherwise a new one is allocated.

        Returns:
            The document as stored
        """
        saved = self._with_ref_id(
            document.model_copy(update={"updated_at": self._clock()})
        )
        others = [doc for doc in self._read_all() if doc.id != saved.id]
        self._write_all([saved, *others])
        return saved

    def create_next_version(self, document_id: str) -> PlatformDocument | None:
        """
        Start a new draft version of a document.

        The new version is a separate document with its own id and RefID;
        the current one is marked superseded.

        Returns:
            The new version, or None if document_id does not exist
        """
        current = self.get_document(document_id)
        if current is None:
            return None

        now = self._clock()
        next_version = current.version + 1
        draft = PlatformDocument.model_validate(
            {
                **current.to_storage_dict(),
                "id": next_record_id("doc"),
                "refId": "",
                "status": DocumentStatus.DRAFT.value,
                "version": next_version,
                "createdAt": now.isoformat(),
                "updatedAt": now.isoformat(),
                "title": f"{current.base_title} (v{next_version})",
            }
        )
        draft = self._with_ref_id(draft)

        documents = [
            doc.model_copy(update={"status": DocumentStatus.SUPERSEDED, "updated_at": now})
            if doc.id == current.id
            else doc
            for doc in self._read_all()
        ]
        self._write_all([draft, *documents])
        logger.info("Created %s v%d from %s", draft.id, next_version, current.id)
        return draft

    def find_entity_by_ref_id(self, project_id: str, ref_id: str) -> EntityRef | None:
        """Resolve a RefID within a request."""
        return self.registry.find_entity(project_id, ref_id)
