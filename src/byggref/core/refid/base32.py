"""
Crockford-style base32 codec used by RefIDs.

The alphabet leaves out I, L, O and U so identifiers survive being read
aloud or copied by hand. Lenient decoding folds the usual transcription
mistakes back onto the alphabet:

    I -> 1, L -> 1, O -> 0, U -> V

and ignores case and any character outside [A-Z0-9] (hyphens, spaces,
punctuation). ``decode_strict`` is the counterpart for contexts where a
malformed input must be rejected rather than silently repaired.

Public API:
    - ALPHABET: The 32 symbols, in value order
    - normalize_input: Apply the lenient input folding
    - value_to_char / char_to_value: Single-symbol mapping
    - encode: Bytes to symbols, MSB first
    - decode: Symbols to bytes, lenient
    - decode_strict: Symbols to bytes, raising on malformed input
"""

import re

from byggref.core.refid.exceptions import Base32DecodeError

ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

# Commonly confused characters and what they were meant to be
TOLERANT_MAP = {
    "I": "1",
    "L": "1",
    "O": "0",
    "U": "V",
}

_VALUES = {char: index for index, char in enumerate(ALPHABET)}
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_STRICT_SEPARATORS = re.compile(r"[-\s]")


def normalize_input(text: str) -> str:
    """
    Fold text onto the alphabet the lenient way.

    Args:
        text: Arbitrary user input

    Returns:
        Uppercased text with separators removed and confusable letters replaced

    Examples:
        >>> normalize_input("ab-cd io")
        'ABCD10'
    """
    compact = _NON_ALNUM.sub("", text.upper())
    return "".join(TOLERANT_MAP.get(char, char) for char in compact)


def value_to_char(value: int) -> str:
    """Map a value to its symbol, using only the low 5 bits."""
    return ALPHABET[value & 31]


def char_to_value(char: str) -> int | None:
    """
    Map a single character to its value.

    Lenient folding applies, so ``"o"`` maps to 0 and ``"L"`` to 1.

    Returns:
        The symbol value, or None if nothing maps
    """
    normalized = normalize_input(char)
    if not normalized:
        return None
    return _VALUES.get(normalized[0])


def encode(data: bytes, output_length: int | None = None) -> str:
    """
    Encode bytes 5 bits at a time, most significant bit first.

    A partial trailing group is shifted into the high bits of one more
    symbol. When ``output_length`` is given the result is truncated or
    right-padded with ``"0"`` to exactly that length.

    Args:
        data: Bytes to encode
        output_length: Optional fixed output width

    Returns:
        The encoded string

    Examples:
        >>> encode(b"\\xff")
        'ZW'
        >>> encode(b"\\xff", 4)
        'ZW00'
    """
    buffer = 0
    bits = 0
    output: list[str] = []

    for byte in data:
        buffer = ((buffer << 8) | byte) & 0xFFFF
        bits += 8
        while bits >= 5:
            bits -= 5
            output.append(value_to_char(buffer >> bits))

    if bits > 0:
        output.append(value_to_char(buffer << (5 - bits)))

    encoded = "".join(output)
    if output_length:
        if len(encoded) > output_length:
            return encoded[:output_length]
        return encoded.ljust(output_length, ALPHABET[0])
    return encoded


def _unpack(symbols: str) -> tuple[bytes, int, int]:
    """Unpack alphabet symbols into bytes; also return leftover bits and their count."""
    out = bytearray()
    buffer = 0
    bits = 0

    for char in symbols:
        value = _VALUES.get(char)
        if value is None:
            continue
        buffer = ((buffer << 5) | value) & 0xFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)

    return bytes(out), buffer & ((1 << bits) - 1), bits


def decode(text: str) -> bytes:
    """
    Decode leniently.

    Case, separators and the I/L/O/U confusions are all forgiven, and any
    character that still does not map is skipped. Leftover bits that do not
    fill a byte are dropped. Never raises.

    Examples:
        >>> decode("zw") == decode("Z-W") == b"\\xff"
        True
    """
    data, _, _ = _unpack(normalize_input(text))
    return data


def decode_strict(text: str) -> bytes:
    """
    Decode, rejecting anything that is not canonical.

    Case is ignored and hyphens or whitespace may separate groups, but
    confusable letters, other characters and non-zero padding bits are
    errors.

    Raises:
        Base32DecodeError: If the input is not canonical base32
    """
    compact = _STRICT_SEPARATORS.sub("", text).upper()
    for position, char in enumerate(compact):
        if char not in _VALUES:
            raise Base32DecodeError(
                f"Invalid base32 character {char!r} at position {position} in {text!r}"
            )

    data, leftover, bits = _unpack(compact)
    if bits >= 5:
        raise Base32DecodeError(f"Trailing symbol in {text!r} does not complete a byte")
    if leftover:
        raise Base32DecodeError(f"Non-zero padding bits in {text!r}")
    return data


__all__ = [
    "ALPHABET",
    "TOLERANT_MAP",
    "char_to_value",
    "decode",
    "decode_strict",
    "encode",
    "normalize_input",
    "value_to_char",
]
