"""
RefID system for referencing files and documents.

A RefID is a short, checksummed, human-readable identifier such as
``FIL-26AB3K9XQ2-S``. This package provides the codec, checksum, parser,
validator, generator and the registry that hands out unique RefIDs.

Public API:
    Models:
        - RefIdKind: Closed set of namespaces (DOC, FIL)
        - RefIdParts: Parsed kind/body/checksum
        - RegistryEntry: Owner of a registered RefID
        - RegistrationResult: Outcome of RefIdRegistry.register
        - EntityRef: What find_entity resolves to

    Functions:
        - parse_ref_id: Parse text into RefIdParts (None if malformed)
        - normalize_ref_id: Canonical KIND-BODY-CHECKSUM text
        - validate_ref_id: Shape and checksum check
        - assert_valid_ref_id: Normalize or raise InvalidRefIdError
        - generate_ref_id: New candidate RefID
        - compute_checksum: Checksum symbol for a payload

    Registry:
        - RefIdRegistry: Allocate, register and resolve RefIDs
        - RefIdAllocationError: Raised when allocation runs out of attempts

Example:
    >>> from datetime import datetime
    >>> from byggref.core.refid import generate_ref_id, validate_ref_id
    >>> ref_id = generate_ref_id("FIL", date=datetime(2026, 2, 19))
    >>> validate_ref_id(ref_id)
    True
    >>> validate_ref_id(ref_id.lower().replace("-", " "))
    True
"""

from byggref.core.refid.checksum import compute_checksum
from byggref.core.refid.exceptions import (
    Base32DecodeError,
    InvalidRefIdError,
    RefIdAllocationError,
    RefIdError,
)
from byggref.core.refid.generator import generate_ref_id, workspace_tag
from byggref.core.refid.models import (
    EntityRef,
    RefIdKind,
    RefIdParts,
    RegistrationResult,
    RegistryEntry,
)
from byggref.core.refid.parser import normalize_ref_id, parse_ref_id
from byggref.core.refid.registry import (
    DEFAULT_MAX_ATTEMPTS,
    REGISTRY_STORAGE_KEY,
    RefIdRegistry,
)
from byggref.core.refid.validate import assert_valid_ref_id, validate_ref_id

__all__ = [
    # Models
    "RefIdKind",
    "RefIdParts",
    "RegistryEntry",
    "RegistrationResult",
    "EntityRef",
    # Functions
    "parse_ref_id",
    "normalize_ref_id",
    "validate_ref_id",
    "assert_valid_ref_id",
    "generate_ref_id",
    "workspace_tag",
    "compute_checksum",
    # Registry
    "RefIdRegistry",
    "REGISTRY_STORAGE_KEY",
    "DEFAULT_MAX_ATTEMPTS",
    # Errors
    "RefIdError",
    "InvalidRefIdError",
    "RefIdAllocationError",
    "Base32DecodeError",
]
