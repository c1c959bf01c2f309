"""
Project file models.

Only metadata lives here; file content is kept elsewhere and referenced by
``content_id``. Records are persisted as a JSON array with camelCase keys,
one object per file.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from byggref.core.refid.models import as_utc


class ProjectFolder(str, Enum):
    """Folders every project file tree has."""

    AVTAL = "avtal"
    OFFERT = "offert"
    ATA = "ata"
    BILDER = "bilder"
    RITNINGAR = "ritningar"
    OVRIGT = "ovrigt"


DEFAULT_FOLDERS: list[ProjectFolder] = list(ProjectFolder)


class FileSourceType(str, Enum):
    """What produced a file."""

    OFFERT = "offert"
    ATA = "ata"
    AVTAL = "avtal"
    MANUAL = "manual"


class WorkspaceId(str, Enum):
    """Workspaces files can be sent between."""

    ENTREPRENOR = "entreprenor"
    BRF = "brf"
    PRIVAT = "privat"


class SenderRole(str, Enum):
    """Role of whoever sent a file."""

    ENTREPRENOR = "entreprenor"
    BRF = "brf"
    PRIVATPERSON = "privatperson"


class ProjectFile(BaseModel):
    """
    A file attached to a project.

    Example:
        >>> file = ProjectFile(
        ...     id="pfile-1",
        ...     ref_id="FIL-26AB3K9XQ2-S",
        ...     project_id="req-1",
        ...     folder=ProjectFolder.AVTAL,
        ...     filename="Avtal.pdf",
        ...     mime_type="application/pdf",
        ...     created_at=datetime(2026, 2, 19, 10, 0),
        ...     created_by="Anna",
        ...     source_type=FileSourceType.MANUAL,
        ...     source_id="manual",
        ... )
        >>> file.to_storage_dict()["refId"]
        'FIL-26AB3K9XQ2-S'
    """

    id: str = Field(..., min_length=1)
    ref_id: str = Field(default="", alias="refId")
    project_id: str = Field(..., alias="projectId")
    folder: ProjectFolder
    filename: str
    mime_type: str = Field(..., alias="mimeType")
    size: int = Field(default=0, ge=0)
    created_at: datetime = Field(..., alias="createdAt")
    created_by: str = Field(..., alias="createdBy")
    source_type: FileSourceType = Field(..., alias="sourceType")
    source_id: str = Field(..., alias="sourceId")
    sender_role: SenderRole | None = Field(default=None, alias="senderRole")
    sender_workspace_id: WorkspaceId | None = Field(default=None, alias="senderWorkspaceId")
    recipient_workspace_id: WorkspaceId | None = Field(
        default=None, alias="recipientWorkspaceId"
    )
    delivered_at: datetime | None = Field(default=None, alias="deliveredAt")
    version: int | None = Field(default=None, ge=1)
    content_id: str | None = Field(default=None, alias="contentId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("created_at", "delivered_at")
    @classmethod
    def timestamps_in_utc(cls, v: datetime | None) -> datetime | None:
        """Read offset-less timestamps from older records as UTC."""
        return as_utc(v)

    def matches_query(self, query: str) -> bool:
        """Case-insensitive match on filename, RefID, folder or source type."""
        needle = query.strip().lower()
        if not needle:
            return True
        return any(
            needle in value.lower()
            for value in (
                self.filename,
                self.ref_id,
                self.folder.value,
                self.source_type.value,
            )
        )

    def visible_to(self, workspace_id: WorkspaceId) -> bool:
        """
        Whether a workspace sees this file.

        The contractor workspace sees files that were not delivered to
        anyone; other workspaces see what they sent or received.
        """
        if workspace_id == WorkspaceId.ENTREPRENOR:
            return self.recipient_workspace_id is None
        return workspace_id in (self.recipient_workspace_id, self.sender_workspace_id)

    def to_storage_dict(self) -> dict[str, object]:
        """Serialize with persisted camelCase keys, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
