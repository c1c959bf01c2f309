"""
RefID parser and normalizer.

Parsing is forgiving about presentation and strict about shape: input is
uppercased and everything outside [A-Z0-9] is dropped, then the compact
string must read as

    KIND  2 digits  6-8 alphabet symbols  1 checksum symbol

e.g. ``fil 26ab3k9xq2 s`` parses the same as ``FIL-26AB3K9XQ2-S``. Whether
the checksum is *correct* is left to validate_ref_id.

Public API:
    - REFID_PATTERN: Compiled pattern for the compact form
    - parse_ref_id: Parse input into RefIdParts, or None
    - normalize_ref_id: Canonical text, best effort for malformed input
"""

import re

from byggref.core.refid.base32 import ALPHABET
from byggref.core.refid.models import RefIdKind, RefIdParts

_NON_ALNUM = re.compile(r"[^A-Z0-9]")

# Alphabet as a character class: 0-9 and A-Z without I, L, O, U
_SYMBOL = f"[{ALPHABET}]"
_KINDS = "|".join(kind.value for kind in RefIdKind)

REFID_PATTERN = re.compile(
    rf"^({_KINDS})([0-9]{{2}}{_SYMBOL}{{6,8}})({_SYMBOL})$"
)


def parse_ref_id(value: str) -> RefIdParts | None:
    """
    Parse a RefID into its parts without checking the checksum.

    Args:
        value: Any text, in any case, with any separators

    Returns:
        RefIdParts if the shape matches, None otherwise (never raises)

    Examples:
        >>> parse_ref_id("fil-26ab3k9xq2-s").body
        '26AB3K9XQ2'
        >>> parse_ref_id("not a ref") is None
        True
    """
    compact = _NON_ALNUM.sub("", value.upper())
    match = REFID_PATTERN.match(compact)
    if match is None:
        return None

    kind, body, checksum = match.groups()
    return RefIdParts(kind=RefIdKind(kind), body=body, checksum=checksum)


def normalize_ref_id(value: str) -> str:
    """
    Canonicalize a RefID as ``KIND-BODY-CHECKSUM``.

    Input that does not parse is returned trimmed and uppercased, so this
    never raises and is idempotent, but only well-formed input round-trips.

    Examples:
        >>> normalize_ref_id(" fil 26ab3k9xq2 s ")
        'FIL-26AB3K9XQ2-S'
        >>> normalize_ref_id(" nope ")
        'NOPE'
    """
    parts = parse_ref_id(value)
    if parts is None:
        return value.strip().upper()
    return str(parts)
