"""Source platform API layer: transport, client and document fetcher."""

from __future__ import annotations

from .client import NotionSource, SourceClient
from .fetcher import ContentFetcher, collect_pages, extract_title
from .rate_limit import TokenBucket
from .transport import NotionTransport

__all__ = [
    "ContentFetcher",
    "NotionSource",
    "NotionTransport",
    "SourceClient",
    "TokenBucket",
    "collect_pages",
    "extract_title",
]
