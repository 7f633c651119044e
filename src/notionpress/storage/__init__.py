"""Persistence abstraction for batches, registries and document mappings."""

from __future__ import annotations

from .base import (
    BATCHES,
    LINK_SLUGS,
    LINKS,
    MAPPINGS,
    MEDIA,
    Store,
)
from .memory import MemoryStore

__all__ = [
    "BATCHES",
    "LINK_SLUGS",
    "LINKS",
    "MAPPINGS",
    "MEDIA",
    "MemoryStore",
    "Store",
]
