"""Documents with registered ``DOC`` RefIDs."""

from byggref.core.documents.models import (
    Audience,
    CreatorRole,
    DocumentAttachment,
    DocumentStatus,
    DocumentType,
    PlatformDocument,
)
from byggref.core.documents.store import DOCUMENTS_STORAGE_KEY, DocumentStore

__all__ = [
    "Audience",
    "CreatorRole",
    "DOCUMENTS_STORAGE_KEY",
    "DocumentAttachment",
    "DocumentStatus",
    "DocumentStore",
    "DocumentType",
    "PlatformDocument",
]
