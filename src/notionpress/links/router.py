"""Serve the placeholder route for links to not-yet-synced documents."""

from __future__ import annotations

from .registry import LinkRegistry
from .resolver import LinkResolver, source_url


class LinkRouter:
    """Answer requests for ``{placeholder_route_prefix}{slug}``.

    The target platform mounts this behind its placeholder route and
    redirects to whatever :meth:`resolve_route` returns.
    """

    def __init__(self, registry: LinkRegistry, resolver: LinkResolver) -> None:
        self._registry = registry
        self._resolver = resolver

    def resolve_route(self, slug: str) -> str | None:
        """Return the redirect target for *slug*.

        The target permalink once the document is synced, the source
        platform URL before that, and ``None`` for unknown slugs.
        """
        entry = self._registry.find_by_slug(slug.strip("/"))
        if entry is None:
            return None
        return self._resolver.permalink(entry) or source_url(entry.source_id)
