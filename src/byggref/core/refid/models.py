"""
RefID models.

A RefID has three logical parts joined by hyphens:

    FIL-26AB3K9XQ2-S
    ^^^ ^^^^^^^^^^ ^
    |   |          checksum (one alphabet character)
    |   body (2-digit year, optional workspace tag, random fragment)
    kind (closed set of namespaces)

Registry entries are persisted as one JSON object keyed by canonical RefID,
so their field aliases (``projectId``, ``createdAt``...) are part of the
storage format and must not change.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RefIdKind(str, Enum):
    """Namespaces a RefID can belong to."""

    DOCUMENT = "DOC"
    FILE = "FIL"


class RefIdParts(BaseModel):
    """
    Structured form of a parsed RefID.

    Parsing only checks the shape; whether ``checksum`` is correct for
    ``kind + body`` is a separate question answered by validation.

    Example:
        >>> parts = RefIdParts(kind=RefIdKind.FILE, body="26AB3K9XQ2", checksum="S")
        >>> str(parts)
        'FIL-26AB3K9XQ2-S'
    """

    kind: RefIdKind
    body: str
    checksum: str

    model_config = ConfigDict(frozen=True)

    @property
    def payload(self) -> str:
        """The string the checksum is computed over."""
        return f"{self.kind.value}{self.body}"

    def __str__(self) -> str:
        """Format as {kind}-{body}-{checksum}"""
        return f"{self.kind.value}-{self.body}-{self.checksum}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Read a timestamp stored without an offset as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RegistryEntry(BaseModel):
    """
    The owner of one canonical RefID.

    Entries are created once and never mutated or deleted.
    """

    kind: RefIdKind = Field(..., description="Namespace of the owning entity")
    id: str = Field(..., description="Caller-defined entity id")
    project_id: str | None = Field(
        default=None,
        alias="projectId",
        description="Project scope; lookups from other projects do not see the entry",
    )
    workspace_id: str | None = Field(
        default=None,
        alias="workspaceId",
        description="Workspace label the RefID was allocated for",
    )
    created_at: datetime = Field(
        default_factory=_utc_now,
        alias="createdAt",
        description="When the entry was registered",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    @field_validator("created_at")
    @classmethod
    def created_at_in_utc(cls, v: datetime) -> datetime:
        """Read an offset-less timestamp as UTC."""
        return as_utc(v)

    def owned_by(self, kind: RefIdKind | str, entity_id: str) -> bool:
        """Whether this entry belongs to the given (kind, id) pair."""
        return self.kind == RefIdKind(kind) and self.id == entity_id

    def to_storage_dict(self) -> dict[str, str]:
        """Serialize with the persisted camelCase keys, omitting unset scopes."""
        data: dict[str, str] = {"kind": self.kind.value, "id": self.id}
        if self.project_id is not None:
            data["projectId"] = self.project_id
        if self.workspace_id is not None:
            data["workspaceId"] = self.workspace_id
        data["createdAt"] = self.created_at.isoformat().replace("+00:00", "Z")
        return data


class RegistrationResult(BaseModel):
    """
    Outcome of a registration attempt.

    ``ok`` is False for invalid input (``existing`` is None), for a
    collision with another owner (``existing`` is that owner's entry) and
    for a RefID held by an entry that can no longer be read
    (``malformed_existing`` is True).
    """

    ok: bool
    ref_id: str
    existing: RegistryEntry | None = None
    malformed_existing: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def collided(self) -> bool:
        """True when the RefID is held by a different or unreadable entry."""
        return not self.ok and (self.existing is not None or self.malformed_existing)


class EntityRef(BaseModel):
    """What a RefID resolves to."""

    kind: RefIdKind
    id: str
    project_id: str | None = None

    model_config = ConfigDict(frozen=True)
