"""Resolve links that point at source documents.

Recognised internal link shapes:

* ``/<32 hex>`` with an optional path, query or fragment tail (the form
  the source API uses in rich-text ``href`` values);
* ``https://notion.so/<32 hex>`` or a dashed UUID, optionally behind a
  workspace segment and a title prefix
  (``https://www.notion.so/acme/Roadmap-<32 hex>``).

A synced referent resolves to its target permalink; anything else
resolves to the placeholder route ``{site_url}{prefix}{slug}``, after
making sure a Link Registry row exists for it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from notionpress.config import NotionpressConfig
from notionpress.models import LinkEntry, LinkKind
from notionpress.target import TargetPlatform
from notionpress.utils.ids import normalize_id

from .registry import LinkRegistry

_PATH_ID_RE = re.compile(r"^/([a-f0-9]{32})(?:[/?#].*)?$", re.IGNORECASE)
_NOTION_URL_RE = re.compile(
    r"^https?://(?:www\.)?notion\.so/(?:[^/?#]+/)?(?:[^/?#]*-)?"
    r"([a-f0-9]{32}|[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})"
    r"(?:[/?#].*)?$",
    re.IGNORECASE,
)


def extract_source_id(url: str) -> str | None:
    """Return the normalised source id *url* points at, or ``None``."""
    url = url.strip()
    match = _PATH_ID_RE.match(url) or _NOTION_URL_RE.match(url)
    if match is None:
        return None
    return normalize_id(match.group(1))


def source_url(source_id: str) -> str:
    """Return the canonical source platform URL of a document."""
    return f"https://notion.so/{normalize_id(source_id)}"


@dataclass(frozen=True)
class ResolvedLink:
    """Result of :meth:`LinkResolver.resolve`.

    ``source_id`` is set for internal links and is what the rich-text
    formatter writes into ``data-notion-id``.
    """

    url: str
    source_id: str | None = None


class LinkResolver:
    """Turn source links into target URLs through the Link Registry.

    Parameters
    ----------
    registry:
        The Link Registry.
    target:
        Used to resolve permalinks of synced documents.
    config:
        Supplies ``site_url`` and ``placeholder_route_prefix``.
    """

    def __init__(
        self,
        registry: LinkRegistry,
        target: TargetPlatform,
        config: NotionpressConfig,
    ) -> None:
        self._registry = registry
        self._target = target
        self._config = config

    @property
    def registry(self) -> LinkRegistry:
        return self._registry

    def placeholder_url(self, entry: LinkEntry) -> str:
        return f"{self._config.site_url.rstrip('/')}{self._config.placeholder_route_prefix}{entry.slug}"

    def permalink(self, entry: LinkEntry) -> str | None:
        if not entry.is_synced or entry.target_ref is None:
            return None
        return self._target.resolve_permalink(entry.target_ref)

    def resolve(self, url: str) -> ResolvedLink:
        """Resolve an arbitrary link.

        External links come back unchanged with ``source_id=None``.
        """
        source_id = extract_source_id(url)
        if source_id is None:
            return ResolvedLink(url=url)
        return ResolvedLink(url=self.url_for(source_id), source_id=source_id)

    def url_for(
        self,
        source_id: str,
        title: str | None = None,
        kind: LinkKind | None = None,
    ) -> str:
        """Return the URL to emit for a reference to *source_id*.

        Registers the referent when it is not known yet, so the placeholder
        route resolves before the referent is ever synced.
        """
        entry = self._registry.find(source_id)
        if entry is None or (title and entry.title == entry.source_id):
            entry = self._registry.register(source_id, title=title, kind=kind)
        return self.permalink(entry) or self.placeholder_url(entry)

    def current_url(self, source_id: str) -> str:
        """Return the URL a repaired link should carry, without registering.

        Falls back to the source platform URL when the id is unknown.
        """
        entry = self._registry.find(source_id)
        if entry is None:
            return source_url(source_id)
        return self.permalink(entry) or self.placeholder_url(entry)
