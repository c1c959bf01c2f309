"""
Single-character RefID checksum.

The checksum is an error-detecting code for human transcription, not a
security mechanism. Each step multiplies by 3 (coprime with 32) and adds
the character position, so both substituted and transposed characters
change the result.
"""

import re

from byggref.core.refid.base32 import char_to_value, value_to_char

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def _char_value(char: str) -> int:
    value = char_to_value(char)
    if value is not None:
        return value
    return ord(char) % 32


def compute_checksum(payload: str) -> str:
    """
    Compute the checksum symbol for a payload.

    The payload is uppercased and stripped of anything outside [A-Z0-9]
    before folding, so ``"fil-26ab"`` and ``"FIL26AB"`` agree.

    Args:
        payload: Usually ``kind + body`` of a RefID

    Returns:
        One character from the base32 alphabet

    Examples:
        >>> compute_checksum("FIL26AB3K9XQ2") == compute_checksum("fil-26ab3k9xq2")
        True
    """
    normalized = _NON_ALNUM.sub("", payload.upper())
    checksum = 0
    for index, char in enumerate(normalized):
        checksum = (checksum * 3 + _char_value(char) + index) % 32
    return value_to_char(checksum)
