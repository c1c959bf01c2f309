"""
RefID generator.

Builds fresh, checksum-valid candidates from a kind, an optional workspace
label, a date and 5 random bytes. The body is

    {year:2}{workspace tag:0|2}{random:8}  truncated to 10 characters

so with a workspace tag the random fragment loses its last two symbols.

Generation never touches storage, so a candidate is not known to be
unique. RefIdRegistry.allocate is responsible for reserving one.

Public API:
    - generate_ref_id: Generate one candidate RefID
    - workspace_tag: Derive the 2-symbol tag for a workspace label
    - candidate_factory: Bind generation inputs into a zero-argument callable
"""

import random
import secrets
from collections.abc import Callable
from datetime import datetime

from byggref.core.refid.base32 import encode
from byggref.core.refid.checksum import compute_checksum
from byggref.core.refid.models import RefIdKind

RANDOM_BYTES = 5
RANDOM_LENGTH = 8
BODY_LENGTH = 10
TAG_LENGTH = 2

RandomSource = Callable[[int], bytes]


def _random_bytes(size: int) -> bytes:
    """Secure random bytes, or pseudo-random ones if the OS has no source."""
    try:
        return secrets.token_bytes(size)
    except NotImplementedError:
        return bytes(random.getrandbits(8) for _ in range(size))


def workspace_tag(workspace_id: str | None) -> str:
    """
    Derive the 2-symbol workspace tag.

    Args:
        workspace_id: Free-text workspace label

    Returns:
        Two base32 symbols, or "" if the label is missing or blank

    Examples:
        >>> workspace_tag("brf") == workspace_tag(" BRF ")
        True
        >>> workspace_tag("   ")
        ''
    """
    if not workspace_id or not workspace_id.strip():
        return ""
    source = workspace_id.strip().upper().encode("utf-8")
    return encode(source, TAG_LENGTH)


def generate_ref_id(
    kind: RefIdKind | str,
    workspace_id: str | None = None,
    date: datetime | None = None,
    random_bytes: RandomSource | None = None,
) -> str:
    """
    Generate a new candidate RefID.

    Args:
        kind: RefID namespace (``"DOC"``, ``"FIL"`` or a RefIdKind)
        workspace_id: Optional workspace label embedded as a 2-symbol tag
        date: Date whose year prefixes the body (defaults to now)
        random_bytes: Optional byte source taking a size, for tests

    Returns:
        Canonical ``KIND-BODY-CHECKSUM`` string

    Raises:
        ValueError: If kind is not a known RefIdKind

    Example:
        >>> ref_id = generate_ref_id("FIL", date=datetime(2026, 2, 19))
        >>> ref_id.startswith("FIL-26")
        True
    """
    kind = RefIdKind(kind)
    date = date or datetime.now()
    source = random_bytes or _random_bytes

    year = f"{date.year % 100:02d}"
    random_part = encode(source(RANDOM_BYTES), RANDOM_LENGTH)
    body = f"{year}{workspace_tag(workspace_id)}{random_part}"[:BODY_LENGTH]
    checksum = compute_checksum(f"{kind.value}{body}")

    return f"{kind.value}-{body}-{checksum}"


def candidate_factory(
    kind: RefIdKind | str,
    workspace_id: str | None = None,
    date: datetime | None = None,
) -> Callable[[], str]:
    """Return a callable producing a fresh candidate on every call."""

    def factory() -> str:
        return generate_ref_id(kind, workspace_id=workspace_id, date=date)

    return factory
