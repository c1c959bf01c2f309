"""
Document models.

A PlatformDocument is a quote, contract or change order (ÄTA) attached to
a request. Stored documents may come from older app versions, so
validation is lenient: unknown enum values and blank labels fall back to
defaults instead of failing the whole record. Only a missing request id
makes a record unusable.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from byggref.core.refid.models import as_utc


class DocumentType(str, Enum):
    QUOTE = "quote"
    CONTRACT = "contract"
    ATE = "ate"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class Audience(str, Enum):
    BRF = "brf"
    PRIVAT = "privat"


class CreatorRole(str, Enum):
    ENTREPRENOR = "entreprenor"
    BRF = "brf"
    PRIVATPERSON = "privatperson"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


_TIMESTAMP = TypeAdapter(datetime)


def _is_timestamp(value: Any) -> bool:
    try:
        _TIMESTAMP.validate_python(value)
    except ValidationError:
        return False
    return True


class DocumentAttachment(BaseModel):
    """A project file attached to a document, referenced by id and RefID."""

    file_id: str = Field(..., alias="fileId")
    file_ref_id: str = Field(default="", alias="fileRefId")
    filename: str
    folder: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")

    model_config = ConfigDict(populate_by_name=True)


class PlatformDocument(BaseModel):
    """
    A versioned document belonging to a request.

    ``sections`` is kept as opaque JSON; rendering is done elsewhere.
    """

    id: str = Field(..., min_length=1)
    ref_id: str = Field(default="", alias="refId")
    request_id: str = Field(..., min_length=1, alias="requestId")
    audience: Audience = Audience.BRF
    type: DocumentType = DocumentType.QUOTE
    status: DocumentStatus = DocumentStatus.DRAFT
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=_utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")
    created_by_role: CreatorRole = Field(default=CreatorRole.ENTREPRENOR, alias="createdByRole")
    created_by_label: str = Field(default="Användare", alias="createdByLabel")
    title: str = "Dokument"
    linked_file_ids: list[str] = Field(default_factory=list, alias="linkedFileIds")
    attachments: list[DocumentAttachment] = Field(default_factory=list)
    sections: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def apply_lenient_defaults(cls, data: Any) -> Any:
        """Replace unusable stored values with defaults rather than failing."""
        if not isinstance(data, dict):
            return data

        fixed = dict(data)
        choices = {
            "audience": Audience,
            "type": DocumentType,
            "status": DocumentStatus,
            "createdByRole": CreatorRole,
        }
        for key, enum in choices.items():
            if key in fixed and fixed[key] not in enum._value2member_map_:
                del fixed[key]

        for key in ("refId", "createdByLabel", "title"):
            value = fixed.get(key)
            if key in fixed and (not isinstance(value, str) or not value.strip()):
                del fixed[key]

        version = fixed.get("version")
        if "version" in fixed:
            if isinstance(version, (int, float)) and not isinstance(version, bool):
                fixed["version"] = max(1, round(version))
            else:
                del fixed["version"]

        for key in ("createdAt", "updatedAt"):
            if key in fixed and not _is_timestamp(fixed[key]):
                del fixed[key]
        if "createdAt" not in fixed and "created_at" not in fixed:
            fixed["createdAt"] = _utc_now()
        if "updatedAt" not in fixed and "updated_at" not in fixed:
            fixed["updatedAt"] = fixed.get("createdAt", fixed.get("created_at"))

        for key in ("linkedFileIds", "attachments", "sections"):
            if key in fixed and not isinstance(fixed[key], list):
                del fixed[key]
        if "linkedFileIds" in fixed:
            fixed["linkedFileIds"] = [v for v in fixed["linkedFileIds"] if isinstance(v, str)]
        if "sections" in fixed:
            fixed["sections"] = [v for v in fixed["sections"] if isinstance(v, dict)]

        return fixed

    @field_validator("created_at", "updated_at")
    @classmethod
    def timestamps_in_utc(cls, v: datetime) -> datetime:
        """Read offset-less timestamps from older records as UTC."""
        return as_utc(v)

    @property
    def base_title(self) -> str:
        """Title without a trailing ``(vN)`` version marker."""
        return self.title.split("(v")[0].strip()

    def to_storage_dict(self) -> dict[str, Any]:
        """Serialize with persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
