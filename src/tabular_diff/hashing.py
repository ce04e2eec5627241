"""
Value normalization, row digests and key construction.

Row digests use a djb2 variant by default: a fast non-cryptographic hash
that keeps each index entry at a fixed size regardless of row width. Two
different rows can in principle produce the same 32-bit digest and be
reported as unchanged; pass digest="md5" for a 128-bit digest when that
risk matters more than speed.
"""

import hashlib
from typing import Dict, Iterable, Optional, Sequence

from .config import DIGEST_MD5

MISSING_KEY_DISPLAY = "<missing>"

# Separators: composite match keys, display keys, hashed values
MATCH_KEY_SEPARATOR = "||"
DISPLAY_KEY_SEPARATOR = "_"
VALUE_SEPARATOR = "|"

_DJB2_SEED = 5381
_MASK_32 = 0xFFFFFFFF


def hash_string(value: str) -> str:
    """
    djb2-xor hash of a string as 8 lowercase hex digits.

    Computes h = (h * 33) ^ ord(char) over the string, truncated to 32 bits.
    """
    h = _DJB2_SEED
    for char in value:
        h = (((h << 5) + h) ^ ord(char)) & _MASK_32
    return format(h, "08x")


def normalize_value(
    value: Optional[str],
    case_sensitive: bool = True,
    trim_whitespace: bool = True,
) -> str:
    """Normalize a cell for comparison; None becomes an empty string."""
    normalized = "" if value is None else str(value)
    if trim_whitespace:
        normalized = normalized.strip()
    if not case_sensitive:
        normalized = normalized.lower()
    return normalized


def hash_row(
    row: Dict[str, str],
    columns: Iterable[str],
    case_sensitive: bool = True,
    trim_whitespace: bool = True,
    digest: str = "djb2",
) -> str:
    """Digest the normalized values of the given columns."""
    # Sort columns so the digest doesn't depend on header order
    values = VALUE_SEPARATOR.join(
        normalize_value(row.get(k), case_sensitive, trim_whitespace)
        for k in sorted(columns)
    )
    if digest == DIGEST_MD5:
        return hashlib.md5(values.encode('utf-8')).hexdigest()
    return hash_string(values)


def make_composite_key(row: Dict[str, str], primary_keys: Sequence[str]) -> str:
    """Create the match key from primary key values."""
    return MATCH_KEY_SEPARATOR.join(
        "" if row.get(k) is None else str(row.get(k)) for k in primary_keys
    )


def make_display_key(row: Dict[str, str], primary_keys: Sequence[str]) -> str:
    """Get a display-friendly primary key (single value or composite)."""
    parts = []
    for k in primary_keys:
        value = row.get(k)
        parts.append(MISSING_KEY_DISPLAY if value is None else str(value))
    return DISPLAY_KEY_SEPARATOR.join(parts)
