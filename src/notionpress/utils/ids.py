"""Source identifier helpers.

Source ids arrive either as 32 hex characters or as dashed UUIDs
(``8-4-4-4-12``).  Every registry and mapping is keyed by the normalised
form: dashes removed, lowercase.
"""

from __future__ import annotations

import re

_SOURCE_ID_RE = re.compile(r"^[a-zA-Z0-9\-]+$")
_HEX32_RE = re.compile(r"^[a-f0-9]{32}$")


def normalize_id(source_id: str) -> str:
    """Strip dashes and surrounding whitespace and lowercase *source_id*.

    >>> normalize_id("1A2B3C4D-0000-0000-0000-00000000000F")
    '1a2b3c4d00000000000000000000000f'
    """
    return source_id.strip().replace("-", "").lower()


def format_uuid(source_id: str) -> str:
    """Return the dashed UUID form of a 32-hex source id.

    Identifiers that are not 32 hex characters after normalisation are
    returned normalised but otherwise unchanged.
    """
    norm = normalize_id(source_id)
    if not _HEX32_RE.match(norm):
        return norm
    return f"{norm[:8]}-{norm[8:12]}-{norm[12:16]}-{norm[16:20]}-{norm[20:]}"


def is_valid_source_id(source_id: str, max_length: int = 50) -> bool:
    """Return ``True`` when *source_id* is non-empty, at most *max_length*
    characters, and made only of ASCII letters, digits and dashes.
    """
    if not source_id or len(source_id) > max_length:
        return False
    return bool(_SOURCE_ID_RE.match(source_id))


def is_hex_id(value: str) -> bool:
    """Return ``True`` when *value* is already a normalised 32-hex id."""
    return bool(_HEX32_RE.match(value))
