"""Link Registry: source document id to placeholder slug and target reference.

A row is created the first time anything references a source document,
usually long before that document is synced, so converters always have a
stable route to emit.  Rows are upgraded with the real title and target
reference once the referent syncs.

Slug rules:

* derived from the title (emoji removed, ASCII-folded, hyphenated);
* an empty derivation falls back to the normalised source id, which is
  also the slug used before any title is known (a *placeholder slug*);
* collisions get ``-1``, ``-2``... suffixes;
* a slug derived from a real title never changes afterwards; a
  placeholder slug is upgraded once, when the first real title arrives.
  :meth:`LinkRegistry.find_by_slug` keeps resolving the old placeholder
  slug through the source id.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

from notionpress.errors import NotionpressPersistenceError
from notionpress.models import LinkEntry, LinkKind, SyncStatus, utcnow
from notionpress.observability import get_logger
from notionpress.storage import LINK_SLUGS, LINKS, Store
from notionpress.utils.ids import is_hex_id, normalize_id
from notionpress.utils.slug import slugify

log = get_logger("notionpress.links")

_MAX_SLUG_ATTEMPTS = 1000


def is_placeholder(entry: LinkEntry) -> bool:
    """Return ``True`` while *entry* still uses its source id as slug."""
    return entry.slug == entry.source_id


class LinkRegistry:
    """Store-backed registry of referenced source documents.

    Parameters
    ----------
    store:
        Persistence backend; rows live in :data:`~notionpress.storage.LINKS`
        and the slug index in :data:`~notionpress.storage.LINK_SLUGS`.
    clock:
        Zero-argument callable returning "now".
    """

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    # -- reads -------------------------------------------------------------

    def find(self, source_id: str) -> LinkEntry | None:
        record = self._store.get(LINKS, normalize_id(source_id))
        return LinkEntry.from_dict(record) if record is not None else None

    def find_by_slug(self, slug: str) -> LinkEntry | None:
        """Look up an entry by its slug, or by source id for placeholder slugs."""
        owner = self._store.get(LINK_SLUGS, slug)
        if owner is not None:
            entry = self.find(owner["source_id"])
            if entry is not None:
                return entry
        if is_hex_id(slug):
            return self.find(slug)
        return None

    def entries(self) -> Iterator[LinkEntry]:
        for _key, record in self._store.scan(LINKS):
            yield LinkEntry.from_dict(record)

    # -- writes ------------------------------------------------------------

    def register(
        self,
        source_id: str,
        title: str | None = None,
        kind: LinkKind | None = None,
    ) -> LinkEntry:
        """Create or refresh the entry for *source_id*.

        Parameters
        ----------
        source_id:
            Source document id, dashed or not.
        title:
            Real display title, when known.  ``None`` or blank keeps the
            current title (the id for new entries).
        kind:
            Page or database; ``None`` keeps the current kind (page for
            new entries).

        Returns
        -------
        LinkEntry
            The entry as stored.
        """
        key = normalize_id(source_id)
        title = (title or "").strip() or None
        current = self.find(key)

        wanted_slug: str | None = None
        if current is None or (title is not None and is_placeholder(current)):
            wanted_slug = self._claim_slug(key, title)

        now = self._clock()

        def mutate(record: dict[str, Any] | None) -> dict[str, Any]:
            if record is None:
                entry = LinkEntry(
                    source_id=key,
                    title=title or key,
                    slug=wanted_slug or key,
                    kind=kind or LinkKind.PAGE,
                    created_at=now,
                    updated_at=now,
                )
                return entry.to_dict()
            entry = LinkEntry.from_dict(record)
            if title is not None:
                entry.title = title
            if wanted_slug is not None and is_placeholder(entry):
                entry.slug = wanted_slug
            if kind is not None:
                entry.kind = kind
            entry.updated_at = now
            return entry.to_dict()

        stored = LinkEntry.from_dict(self._store.update(LINKS, key, mutate))
        if wanted_slug is not None and wanted_slug != stored.slug:
            self._release_slug(wanted_slug, key)
        return stored

    def mark_synced(
        self,
        source_id: str,
        target_ref: str,
        title: str | None = None,
        kind: LinkKind | None = None,
    ) -> LinkEntry:
        """Record that *source_id* now exists on the target as *target_ref*."""
        key = normalize_id(source_id)
        self.register(key, title=title, kind=kind)
        now = self._clock()

        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            if record is None:
                return None
            entry = LinkEntry.from_dict(record)
            entry.sync_status = SyncStatus.SYNCED
            entry.target_ref = target_ref
            entry.updated_at = now
            return entry.to_dict()

        entry = LinkEntry.from_dict(self._store.update(LINKS, key, mutate))
        log.debug(
            "Link entry synced",
            extra={"extra_fields": {"source_id": key, "slug": entry.slug, "target_ref": target_ref}},
        )
        return entry

    # -- slugs -------------------------------------------------------------

    def _claim_slug(self, source_id: str, title: str | None) -> str:
        base = slugify(title) if title else ""
        if not base:
            base = source_id
        for attempt in range(_MAX_SLUG_ATTEMPTS):
            candidate = base if attempt == 0 else f"{base}-{attempt}"
            if self._try_claim(candidate, source_id):
                return candidate
        raise NotionpressPersistenceError(
            message=f"Could not allocate a unique slug for {source_id}",
            context={"source_id": source_id, "slug": base, "attempts": _MAX_SLUG_ATTEMPTS},
        )

    def _try_claim(self, slug: str, source_id: str) -> bool:
        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            if record is None:
                return {"source_id": source_id}
            return None

        owner = self._store.update(LINK_SLUGS, slug, mutate)
        return owner is not None and owner["source_id"] == source_id

    def _release_slug(self, slug: str, source_id: str) -> None:
        owner = self._store.get(LINK_SLUGS, slug)
        if owner is not None and owner["source_id"] == source_id:
            self._store.delete(LINK_SLUGS, slug)
