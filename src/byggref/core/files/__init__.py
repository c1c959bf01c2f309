"""
Project file records with registered ``FIL`` RefIDs.

Public API:
    - ProjectFileStore: Add, list, update, share and delete file records
    - ProjectFile: File record model
    - ProjectFolder, FileSourceType, WorkspaceId, SenderRole: Enumerations
"""

from byggref.core.files.models import (
    DEFAULT_FOLDERS,
    FileSourceType,
    ProjectFile,
    ProjectFolder,
    SenderRole,
    WorkspaceId,
)
from byggref.core.files.store import (
    PROJECT_FILE_TREES_KEY,
    PROJECT_FILES_STORAGE_KEY,
    ProjectFileStore,
)

__all__ = [
    "DEFAULT_FOLDERS",
    "FileSourceType",
    "PROJECT_FILE_TREES_KEY",
    "PROJECT_FILES_STORAGE_KEY",
    "ProjectFile",
    "ProjectFileStore",
    "ProjectFolder",
    "SenderRole",
    "WorkspaceId",
]
