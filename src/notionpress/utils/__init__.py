from .chunk import chunk_items
from .hashing import md5_hash
from .ids import format_uuid, is_valid_source_id, normalize_id
from .redact import redact, redact_url
from .slug import slugify, strip_emoji

__all__ = [
    "chunk_items",
    "format_uuid",
    "is_valid_source_id",
    "md5_hash",
    "normalize_id",
    "redact",
    "redact_url",
    "slugify",
    "strip_emoji",
]
