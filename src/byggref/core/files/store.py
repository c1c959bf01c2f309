"""
Project file metadata store.

File records are kept as one JSON array under PROJECT_FILES_STORAGE_KEY
and every record carries a ``FIL`` RefID registered in the RefIdRegistry
and scoped to the file's project. Records written before RefIDs existed,
or holding a RefID that is invalid or owned by another entity, are
backfilled the first time they are read and written back once.

Deleting a file removes its record only. The RefID stays in the
registry, so it can never be handed to another file.
"""

from __future__ import annotations

import json
import logging
import secrets
import string
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from byggref.core.files.models import (
    DEFAULT_FOLDERS,
    FileSourceType,
    ProjectFile,
    ProjectFolder,
    SenderRole,
    WorkspaceId,
)
from byggref.core.refid import EntityRef, RefIdKind, RefIdRegistry, validate_ref_id
from byggref.core.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

PROJECT_FILES_STORAGE_KEY = "byggplattformen-project-files-v1"
PROJECT_FILE_TREES_KEY = "byggplattformen-project-file-trees-v1"

# Characters for the random part of record IDs (lowercase alphanumeric)
ID_CHARS = string.ascii_lowercase + string.digits
ID_LENGTH = 6


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def next_record_id(prefix: str) -> str:
    """Return ``{prefix}-{epoch ms}-{6 random chars}``."""
    suffix = "".join(secrets.choice(ID_CHARS) for _ in range(ID_LENGTH))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class ProjectFileStore:
    """
    Storage layer for project file records.

    Example:
        >>> store = ProjectFileStore(MemoryKeyValueStore(), registry)
        >>> file = store.add_file(
        ...     project_id="req-1",
        ...     folder=ProjectFolder.AVTAL,
        ...     filename="Avtal.pdf",
        ...     mime_type="application/pdf",
        ...     created_by="Anna",
        ...     source_type=FileSourceType.MANUAL,
        ...     source_id="manual",
        ...     size=1024,
        ... )
        >>> store.find_entity_by_ref_id("req-1", file.ref_id).id == file.id
        True
    """

    def __init__(
        self,
        store: KeyValueStore,
        registry: RefIdRegistry,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize store.

        Args:
            store: Key-value store holding the records
            registry: Registry that owns the files' RefIDs
            clock: Source of timestamps (defaults to UTC now)
        """
        self.store = store
        self.registry = registry
        self._clock = clock or _utc_now

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_raw(self) -> list[dict[str, Any]]:
        raw = self.store.get(PROJECT_FILES_STORAGE_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse project files: %s", e)
            return []
        if not isinstance(data, list):
            return []
        return [
            entry
            for entry in data
            if isinstance(entry, dict) and isinstance(entry.get("id"), str)
        ]

    def _backfill(self, file: ProjectFile) -> ProjectFile:
        """Make sure the file holds a RefID registered to it."""
        existing = file.ref_id if validate_ref_id(file.ref_id) else None
        ref_id = self.registry.ensure_registered(
            existing,
            RefIdKind.FILE,
            file.id,
            project_id=file.project_id,
        )
        if ref_id == file.ref_id:
            return file
        logger.debug("Backfilled RefID %s for file %s", ref_id, file.id)
        return file.model_copy(update={"ref_id": ref_id})

    @staticmethod
    def _parse(entry: dict[str, Any]) -> ProjectFile:
        if not isinstance(entry.get("refId"), str):
            entry = {**entry, "refId": ""}
        return ProjectFile.model_validate(entry)

    def _read_all(self) -> list[ProjectFile]:
        """Read every record, backfilling RefIDs and persisting any change."""
        files: list[ProjectFile] = []
        changed = False

        for entry in self._load_raw():
            try:
                file = self._parse(entry)
            except ValidationError as e:
                logger.warning("Skipping unreadable project file %s: %s", entry.get("id"), e)
                continue

            normalized = self._backfill(file)
            if normalized.ref_id != file.ref_id:
                changed = True
            files.append(normalized)

        if changed:
            self._write_all(files)
        return files

    def _unreadable(self) -> list[dict[str, Any]]:
        """Stored records that fail validation, exactly as stored."""
        kept = []
        for entry in self._load_raw():
            try:
                self._parse(entry)
            except ValidationError:
                kept.append(entry)
        return kept

    def _write_all(self, files: list[ProjectFile]) -> None:
        """Persist ``files``; records that cannot be read are carried over untouched."""
        ids = {file.id for file in files}
        payload: list[dict[str, Any]] = [file.to_storage_dict() for file in files]
        payload.extend(entry for entry in self._unreadable() if entry["id"] not in ids)
        self.store.set(PROJECT_FILES_STORAGE_KEY, json.dumps(payload, ensure_ascii=False))

    def _read_trees(self) -> dict[str, list[str]]:
        raw = self.store.get(PROJECT_FILE_TREES_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_project_file_tree(self, project_id: str) -> list[ProjectFolder]:
        """
        Return a project's folders, creating the default tree on first use.

        Args:
            project_id: Project to look up

        Returns:
            The project's folder list
        """
        trees = self._read_trees()
        existing = [
            ProjectFolder(name)
            for name in trees.get(project_id) or []
            if name in ProjectFolder._value2member_map_
        ]
        if existing:
            return existing

        trees[project_id] = [folder.value for folder in DEFAULT_FOLDERS]
        self.store.set(PROJECT_FILE_TREES_KEY, json.dumps(trees))
        return list(DEFAULT_FOLDERS)

    def list_files(
        self,
        project_id: str,
        folder: ProjectFolder | str | None = None,
        query: str | None = None,
        workspace_id: WorkspaceId | str | None = None,
    ) -> list[ProjectFile]:
        """
        List a project's files, newest first.

        Args:
            project_id: Project to list
            folder: Only files in this folder (unknown folders are ignored)
            query: Substring of filename, RefID, folder or source type
            workspace_id: Only files visible to this workspace

        Returns:
            Matching ProjectFile records
        """
        self.ensure_project_file_tree(project_id)
        folder_filter = _coerce_folder(folder)
        workspace = WorkspaceId(workspace_id) if workspace_id else None

        files = [
            file
            for file in self._read_all()
            if file.project_id == project_id
            and (folder_filter is None or file.folder == folder_filter)
            and (not query or file.matches_query(query))
            and (workspace is None or file.visible_to(workspace))
        ]
        files.sort(key=lambda f: f.created_at, reverse=True)
        return files

    def add_file(
        self,
        *,
        project_id: str,
        folder: ProjectFolder | str,
        filename: str,
        mime_type: str,
        created_by: str,
        source_type: FileSourceType | str,
        source_id: str,
        size: int = 0,
        content_id: str | None = None,
        sender_role: SenderRole | str | None = None,
        sender_workspace_id: WorkspaceId | str | None = None,
        recipient_workspace_id: WorkspaceId | str | None = None,
        delivered_at: datetime | None = None,
        version: int | None = None,
    ) -> ProjectFile:
        """
        Add a file record and allocate its RefID.

        Returns:
            The stored ProjectFile

        Raises:
            RefIdAllocationError: If no unique RefID could be reserved
        """
        self.ensure_project_file_tree(project_id)
        file_id = next_record_id("pfile")
        ref_id = self.registry.ensure_registered(
            None, RefIdKind.FILE, file_id, project_id=project_id
        )

        file = ProjectFile(
            id=file_id,
            ref_id=ref_id,
            project_id=project_id,
            folder=ProjectFolder(folder),
            filename=filename,
            mime_type=mime_type,
            size=size,
            created_at=self._clock(),
            created_by=created_by,
            source_type=FileSourceType(source_type),
            source_id=source_id,
            sender_role=sender_role,
            sender_workspace_id=sender_workspace_id,
            recipient_workspace_id=recipient_workspace_id,
            delivered_at=delivered_at,
            version=version,
            content_id=content_id,
        )

        self._write_all([file, *self._read_all()])
        logger.info("Added file %s (%s) to project %s", file.id, ref_id, project_id)
        return file

    def get_file(self, project_id: str, file_id: str) -> ProjectFile | None:
        """Get a file record by project and id."""
        self.ensure_project_file_tree(project_id)
        for file in self._read_all():
            if file.project_id == project_id and file.id == file_id:
                return file
        return None

    def delete_file(self, project_id: str, file_id: str) -> bool:
        """
        Delete a file record. Its RefID stays registered.

        Returns:
            True if a record was removed
        """
        self.ensure_project_file_tree(project_id)
        files = self._read_all()
        remaining = [
            file
            for file in files
            if not (file.project_id == project_id and file.id == file_id)
        ]
        if len(remaining) == len(files):
            return False

        self._write_all(remaining)
        return True

    def update_file_metadata(
        self,
        project_id: str,
        file_id: str,
        filename: str,
        folder: ProjectFolder | str,
    ) -> ProjectFile | None:
        """
        Rename and/or move a file.

        Returns:
            The updated record, or None if the file does not exist

        Raises:
            ValueError: If filename is blank or folder is unknown
        """
        self.ensure_project_file_tree(project_id)
        next_filename = filename.strip()
        if not next_filename:
            raise ValueError("Filename must not be empty")

        next_folder = _coerce_folder(folder)
        if next_folder is None:
            raise ValueError(f"Invalid folder: {folder}")

        updated: ProjectFile | None = None
        files = []
        for file in self._read_all():
            if file.project_id == project_id and file.id == file_id:
                file = file.model_copy(update={"filename": next_filename, "folder": next_folder})
                updated = file
            files.append(file)

        if updated is None:
            return None
        self._write_all(files)
        return updated

    def share_file_to_workspace(
        self,
        *,
        file_id: str,
        from_project_id: str,
        to_workspace_id: WorkspaceId | str,
        sender_role: SenderRole | str,
        sender_workspace_id: WorkspaceId | str,
        sender_label: str,
        to_project_id: str | None = None,
    ) -> ProjectFile:
        """
        Deliver a copy of a file to another workspace.

        The copy is a new record with its own RefID, in the target project
        (the source project unless ``to_project_id`` is given).

        Raises:
            FileNotFoundError: If the source file does not exist
        """
        source = self.get_file(from_project_id, file_id)
        if source is None:
            raise FileNotFoundError(f"File not found: {file_id}")

        return self.add_file(
            project_id=to_project_id or from_project_id,
            folder=source.folder,
            filename=source.filename,
            mime_type=source.mime_type,
            created_by=sender_label,
            source_type=source.source_type,
            source_id=source.source_id,
            size=source.size,
            content_id=source.content_id,
            sender_role=sender_role,
            sender_workspace_id=sender_workspace_id,
            recipient_workspace_id=to_workspace_id,
            delivered_at=self._clock(),
            version=source.version,
        )

    def find_entity_by_ref_id(self, project_id: str, ref_id: str) -> EntityRef | None:
        """Resolve a RefID within a project (files and documents alike)."""
        return self.registry.find_entity(project_id, ref_id)


def _coerce_folder(value: ProjectFolder | str | None) -> ProjectFolder | None:
    if value is None:
        return None
    try:
        return ProjectFolder(value)
    except ValueError:
        return None
