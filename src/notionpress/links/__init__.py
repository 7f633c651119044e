"""Cross-document links: registry, resolution, placeholder routing, repair."""

from __future__ import annotations

from .registry import LinkRegistry, is_placeholder
from .repair import LinkRepairer
from .resolver import LinkResolver, ResolvedLink, extract_source_id, source_url
from .router import LinkRouter

__all__ = [
    "LinkRegistry",
    "LinkRepairer",
    "LinkResolver",
    "LinkRouter",
    "ResolvedLink",
    "extract_source_id",
    "is_placeholder",
    "source_url",
]
