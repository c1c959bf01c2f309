"""RefID checksum validation."""

from byggref.core.refid.checksum import compute_checksum
from byggref.core.refid.exceptions import InvalidRefIdError
from byggref.core.refid.parser import normalize_ref_id, parse_ref_id


def validate_ref_id(value: str) -> bool:
    """
    Check that a RefID is well formed and carries the right checksum.

    Args:
        value: Candidate RefID, in any presentation parse_ref_id accepts

    Returns:
        True if it parses and the checksum matches, False otherwise
    """
    parts = parse_ref_id(value)
    if parts is None:
        return False
    return parts.checksum == compute_checksum(parts.payload)


def assert_valid_ref_id(value: str) -> str:
    """
    Normalize a RefID, raising if it is not valid.

    Returns:
        The canonical RefID

    Raises:
        InvalidRefIdError: With the original, un-normalized input
    """
    normalized = normalize_ref_id(value)
    if not validate_ref_id(normalized):
        raise InvalidRefIdError(value)
    return normalized
