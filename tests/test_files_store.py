"""
Tests for the project file store.

Covers folder trees, adding and listing files, RefID allocation and
backfill, deletion, metadata updates and sharing between workspaces.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from byggref.core.files import (
    DEFAULT_FOLDERS,
    FileSourceType,
    ProjectFile,
    ProjectFileStore,
    ProjectFolder,
    SenderRole,
    WorkspaceId,
)
from byggref.core.files.store import (
    PROJECT_FILE_TREES_KEY,
    PROJECT_FILES_STORAGE_KEY,
    next_record_id,
)
from byggref.core.refid import (
    REGISTRY_STORAGE_KEY,
    EntityRef,
    RefIdKind,
    RefIdRegistry,
    validate_ref_id,
)
from byggref.core.storage import MemoryKeyValueStore


class TickingClock:
    """Clock that advances one minute per call."""

    def __init__(self) -> None:
        self.now = datetime(2026, 2, 19, 10, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


@pytest.fixture
def files(memory_store, registry) -> ProjectFileStore:
    """Provide a file store sharing the registry's memory store."""
    return ProjectFileStore(memory_store, registry, clock=TickingClock())


def add(files: ProjectFileStore, project_id: str = "req-1", **overrides) -> ProjectFile:
    values = {
        "project_id": project_id,
        "folder": ProjectFolder.AVTAL,
        "filename": "Avtal.pdf",
        "mime_type": "application/pdf",
        "created_by": "Anna",
        "source_type": FileSourceType.MANUAL,
        "source_id": "manual",
        "size": 2048,
    }
    values.update(overrides)
    return files.add_file(**values)


class TestNextRecordId:
    """Tests for next_record_id."""

    def test_format(self):
        """prefix, epoch milliseconds and six lowercase characters."""
        record_id = next_record_id("pfile")
        prefix, millis, suffix = record_id.split("-")

        assert prefix == "pfile"
        assert millis.isdigit()
        assert len(suffix) == 6
        assert suffix == suffix.lower()

    def test_unique(self):
        """Ids do not repeat."""
        assert len({next_record_id("doc") for _ in range(50)}) == 50


class TestFileTree:
    """Tests for ensure_project_file_tree."""

    def test_creates_default_tree(self, files, memory_store):
        """A new project gets every default folder."""
        assert files.ensure_project_file_tree("req-1") == DEFAULT_FOLDERS

        trees = json.loads(memory_store.get(PROJECT_FILE_TREES_KEY))
        assert trees["req-1"] == ["avtal", "offert", "ata", "bilder", "ritningar", "ovrigt"]

    def test_keeps_existing_tree(self, files, memory_store):
        """A stored tree is returned as-is, minus unknown folders."""
        memory_store.set(PROJECT_FILE_TREES_KEY, json.dumps({"req-1": ["bilder", "nope"]}))

        assert files.ensure_project_file_tree("req-1") == [ProjectFolder.BILDER]


class TestAddFile:
    """Tests for add_file."""

    def test_allocates_registered_ref_id(self, files, registry):
        """New files get a FIL RefID scoped to their project."""
        file = add(files)

        assert validate_ref_id(file.ref_id)
        assert file.ref_id.startswith("FIL-")
        assert file.id.startswith("pfile-")
        assert registry.find_entity("req-1", file.ref_id) == EntityRef(
            kind=RefIdKind.FILE, id=file.id, project_id="req-1"
        )

    def test_persists_camel_case(self, files, memory_store):
        """Records are stored with camelCase keys and no unset optionals."""
        file = add(files, content_id="blob-1")

        stored = json.loads(memory_store.get(PROJECT_FILES_STORAGE_KEY))
        assert stored == [
            {
                "id": file.id,
                "refId": file.ref_id,
                "projectId": "req-1",
                "folder": "avtal",
                "filename": "Avtal.pdf",
                "mimeType": "application/pdf",
                "size": 2048,
                "createdAt": "2026-02-19T10:01:00Z",
                "createdBy": "Anna",
                "sourceType": "manual",
                "sourceId": "manual",
                "contentId": "blob-1",
            }
        ]

    def test_accepts_string_enums(self, files):
        """Folder and source type may be given as strings."""
        file = add(files, folder="bilder", source_type="offert")

        assert file.folder == ProjectFolder.BILDER
        assert file.source_type == FileSourceType.OFFERT

    def test_unknown_folder_raises(self, files):
        """Only known folders are accepted."""
        with pytest.raises(ValueError):
            add(files, folder="secret")


class TestListFiles:
    """Tests for list_files."""

    def test_newest_first_and_project_scoped(self, files):
        """Only the project's files, newest first."""
        first = add(files, filename="a.pdf")
        second = add(files, filename="b.pdf")
        add(files, project_id="req-2")

        assert [f.id for f in files.list_files("req-1")] == [second.id, first.id]

    def test_folder_filter(self, files):
        """Filtering by folder; unknown folders do not filter."""
        add(files, folder="avtal")
        photo = add(files, folder="bilder", filename="foto.jpg")

        assert [f.id for f in files.list_files("req-1", folder="bilder")] == [photo.id]
        assert len(files.list_files("req-1", folder="nope")) == 2

    def test_query_matches_filename_ref_id_and_source(self, files):
        """Queries are case-insensitive substrings."""
        contract = add(files, filename="Avtal.pdf")
        quote = add(files, filename="Offert.pdf", folder="offert", source_type="offert")

        assert [f.id for f in files.list_files("req-1", query="AVTAL")] == [contract.id]
        assert [f.id for f in files.list_files("req-1", query=quote.ref_id.lower())] == [
            quote.id
        ]
        assert len(files.list_files("req-1", query="   ")) == 2

    def test_workspace_visibility(self, files):
        """Contractors see undelivered files; others see what they sent or got."""
        internal = add(files)
        delivered = add(
            files,
            sender_role=SenderRole.ENTREPRENOR,
            sender_workspace_id=WorkspaceId.ENTREPRENOR,
            recipient_workspace_id=WorkspaceId.BRF,
        )

        assert [f.id for f in files.list_files("req-1", workspace_id="entreprenor")] == [
            internal.id
        ]
        assert [f.id for f in files.list_files("req-1", workspace_id="brf")] == [delivered.id]
        assert files.list_files("req-1", workspace_id="privat") == []


class TestBackfill:
    """Tests for RefID backfill of stored records."""

    def legacy_record(self, **overrides) -> dict:
        record = {
            "id": "pfile-legacy-1",
            "projectId": "req-legacy",
            "folder": "avtal",
            "filename": "Gammalt.pdf",
            "mimeType": "application/pdf",
            "size": 100,
            "createdAt": "2026-02-10T10:00:00.000Z",
            "createdBy": "Test",
            "sourceType": "manual",
            "sourceId": "manual",
        }
        record.update(overrides)
        return record

    def test_backfills_missing_ref_id_once(self, files, memory_store):
        """Legacy records get a RefID that stays the same on later reads."""
        memory_store.set(PROJECT_FILES_STORAGE_KEY, json.dumps([self.legacy_record()]))

        first = files.list_files("req-legacy")
        assert len(first) == 1
        ref_id = first[0].ref_id
        assert validate_ref_id(ref_id)

        stored = json.loads(memory_store.get(PROJECT_FILES_STORAGE_KEY))
        assert stored[0]["refId"] == ref_id
        assert files.list_files("req-legacy")[0].ref_id == ref_id
        assert files.find_entity_by_ref_id("req-legacy", ref_id).id == "pfile-legacy-1"

    def test_keeps_valid_unregistered_ref_id(self, files, memory_store, make_ref_id):
        """A record's own valid RefID is registered rather than replaced."""
        ref_id = make_ref_id("FIL", seed=1)
        memory_store.set(
            PROJECT_FILES_STORAGE_KEY, json.dumps([self.legacy_record(refId=ref_id)])
        )

        assert files.list_files("req-legacy")[0].ref_id == ref_id

    def test_replaces_ref_id_owned_by_another(self, files, memory_store, registry, make_ref_id):
        """A RefID that belongs to another entity is swapped for a fresh one."""
        ref_id = make_ref_id("FIL", seed=2)
        registry.register(ref_id, RefIdKind.FILE, "someone-else")
        memory_store.set(
            PROJECT_FILES_STORAGE_KEY, json.dumps([self.legacy_record(refId=ref_id)])
        )

        backfilled = files.list_files("req-legacy")[0].ref_id

        assert backfilled != ref_id
        assert registry.get_entry(backfilled).id == "pfile-legacy-1"

    def test_skips_malformed_records(self, files, memory_store):
        """Records that cannot be read are skipped."""
        memory_store.set(
            PROJECT_FILES_STORAGE_KEY,
            json.dumps([{"id": "broken"}, "junk", self.legacy_record()]),
        )

        assert [f.id for f in files.list_files("req-legacy")] == ["pfile-legacy-1"]

    def test_backfill_write_keeps_unreadable_records(self, files, memory_store):
        """Records that fail validation survive the backfill write unchanged."""
        archived = self.legacy_record(id="pfile-archived", folder="arkiv")
        memory_store.set(
            PROJECT_FILES_STORAGE_KEY,
            json.dumps([archived, self.legacy_record()]),
        )

        assert [f.id for f in files.list_files("req-legacy")] == ["pfile-legacy-1"]

        stored = json.loads(memory_store.get(PROJECT_FILES_STORAGE_KEY))
        assert [r["id"] for r in stored] == ["pfile-legacy-1", "pfile-archived"]
        assert stored[0]["refId"]
        assert stored[1] == archived

    def test_add_and_delete_keep_unreadable_records(self, files, memory_store):
        """Writes from add and delete carry unreadable records along."""
        broken = {"id": "pfile-broken", "projectId": "req-1"}
        memory_store.set(PROJECT_FILES_STORAGE_KEY, json.dumps([broken]))

        added = add(files)
        assert files.delete_file("req-1", added.id)

        assert json.loads(memory_store.get(PROJECT_FILES_STORAGE_KEY)) == [broken]

    def test_timestamps_without_offset_read_as_utc(self, files, memory_store):
        """Offset-less and Z-suffixed timestamps sort together."""
        memory_store.set(
            PROJECT_FILES_STORAGE_KEY,
            json.dumps(
                [
                    self.legacy_record(id="pfile-naive", createdAt="2026-02-19T10:00:00"),
                    self.legacy_record(id="pfile-utc", createdAt="2026-02-19T11:00:00Z"),
                ]
            ),
        )

        listed = files.list_files("req-legacy")

        assert [f.id for f in listed] == ["pfile-utc", "pfile-naive"]
        assert listed[1].created_at == datetime(2026, 2, 19, 10, 0, tzinfo=timezone.utc)

    def test_corrupt_blob_reads_as_empty(self, files, memory_store):
        """Unparseable storage lists no files."""
        memory_store.set(PROJECT_FILES_STORAGE_KEY, "{oops")

        assert files.list_files("req-1") == []


class TestGetAndDelete:
    """Tests for get_file and delete_file."""

    def test_get_file(self, files):
        """Files are found by project and id."""
        file = add(files)

        assert files.get_file("req-1", file.id) == file
        assert files.get_file("req-2", file.id) is None
        assert files.get_file("req-1", "missing") is None

    def test_delete_keeps_ref_id_registered(self, files, registry):
        """Deleting a file does not free its RefID."""
        file = add(files)

        assert files.delete_file("req-1", file.id)
        assert files.get_file("req-1", file.id) is None
        assert registry.get_entry(file.ref_id).id == file.id
        assert not registry.register(file.ref_id, RefIdKind.FILE, "new-file").ok

    def test_delete_missing(self, files):
        """Deleting an unknown file reports False."""
        assert not files.delete_file("req-1", "missing")


class TestUpdateFileMetadata:
    """Tests for update_file_metadata."""

    def test_rename_and_move(self, files):
        """Filename is trimmed; RefID is unchanged."""
        file = add(files)

        updated = files.update_file_metadata("req-1", file.id, "  Nytt namn.pdf ", "ovrigt")

        assert updated.filename == "Nytt namn.pdf"
        assert updated.folder == ProjectFolder.OVRIGT
        assert updated.ref_id == file.ref_id
        assert files.get_file("req-1", file.id) == updated

    def test_blank_filename_raises(self, files):
        """Empty names are rejected."""
        file = add(files)
        with pytest.raises(ValueError, match="empty"):
            files.update_file_metadata("req-1", file.id, "   ", "avtal")

    def test_unknown_folder_raises(self, files):
        """Unknown folders are rejected."""
        file = add(files)
        with pytest.raises(ValueError, match="Invalid folder"):
            files.update_file_metadata("req-1", file.id, "x.pdf", "secret")

    def test_missing_file(self, files):
        """Unknown files return None."""
        assert files.update_file_metadata("req-1", "missing", "x.pdf", "avtal") is None


class TestShareFileToWorkspace:
    """Tests for share_file_to_workspace."""

    def test_creates_delivered_copy(self, files, registry):
        """The copy is a new record with its own RefID."""
        source = add(files, content_id="blob-1")

        copy = files.share_file_to_workspace(
            file_id=source.id,
            from_project_id="req-1",
            to_workspace_id="brf",
            sender_role="entreprenor",
            sender_workspace_id="entreprenor",
            sender_label="Bygg AB",
        )

        assert copy.id != source.id
        assert copy.ref_id != source.ref_id
        assert copy.project_id == "req-1"
        assert copy.recipient_workspace_id == WorkspaceId.BRF
        assert copy.sender_role == SenderRole.ENTREPRENOR
        assert copy.created_by == "Bygg AB"
        assert copy.content_id == "blob-1"
        assert copy.delivered_at is not None
        assert registry.find_entity("req-1", copy.ref_id).id == copy.id

    def test_to_other_project(self, files, registry):
        """A target project scopes the copy's RefID to that project."""
        source = add(files)

        copy = files.share_file_to_workspace(
            file_id=source.id,
            from_project_id="req-1",
            to_workspace_id="privat",
            sender_role="entreprenor",
            sender_workspace_id="entreprenor",
            sender_label="Bygg AB",
            to_project_id="req-2",
        )

        assert copy.project_id == "req-2"
        assert registry.find_entity("req-2", copy.ref_id) is not None
        assert registry.find_entity("req-1", copy.ref_id) is None

    def test_missing_source_raises(self, files):
        """Sharing an unknown file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            files.share_file_to_workspace(
                file_id="missing",
                from_project_id="req-1",
                to_workspace_id="brf",
                sender_role="entreprenor",
                sender_workspace_id="entreprenor",
                sender_label="Bygg AB",
            )


class TestSeparateRegistryStore:
    """The registry does not have to share the records' store."""

    def test_registry_on_separate_store(self, memory_store):
        """A registry can live in a different store than the records."""
        registry_store = MemoryKeyValueStore()
        files = ProjectFileStore(memory_store, RefIdRegistry(registry_store))
        file = add(files)

        assert json.loads(registry_store.get(REGISTRY_STORAGE_KEY))[file.ref_id]
