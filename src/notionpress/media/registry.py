"""Media Registry: one target asset per source block.

Rows are keyed by the source block id.  Each carries a fingerprint of the
source URL with its (rotating) signature query removed, so a block whose
file was replaced upstream is detected and re-acquired while a mere
signature refresh is not.

Every write goes through :meth:`Store.update`, keeping concurrent task
callbacks from creating duplicate rows for the same block.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta
from typing import Any

from notionpress.models import MediaEntry, MediaStatus, utcnow
from notionpress.observability import get_logger
from notionpress.storage import MEDIA, Store
from notionpress.utils.hashing import md5_hash

from .signed_url import strip_query

log = get_logger("notionpress.media.registry")


def fingerprint(source_url: str) -> str:
    """Return the content fingerprint of a source URL."""
    return md5_hash(strip_query(source_url))


class MediaRegistry:
    """Store-backed dedup index from source block id to target asset.

    Parameters
    ----------
    store:
        Persistence backend; rows live in :data:`~notionpress.storage.MEDIA`.
    clock:
        Zero-argument callable returning "now".
    """

    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    # -- reads -------------------------------------------------------------

    def find(self, source_block_id: str) -> MediaEntry | None:
        record = self._store.get(MEDIA, source_block_id)
        return MediaEntry.from_dict(record) if record is not None else None

    def entries(self) -> Iterator[MediaEntry]:
        for _key, record in self._store.scan(MEDIA):
            yield MediaEntry.from_dict(record)

    def find_by_asset(self, asset_ref: str) -> list[MediaEntry]:
        """Return every row pointing at *asset_ref*."""
        return [e for e in self.entries() if e.target_asset_ref == asset_ref]

    def needs_reacquire(self, source_block_id: str, source_url: str) -> bool:
        """Return ``True`` when the stored fingerprint differs from *source_url*'s.

        Unknown blocks return ``False``; they need a first acquisition, not
        a re-acquisition.
        """
        entry = self.find(source_block_id)
        if entry is None:
            return False
        return entry.fingerprint != fingerprint(source_url)

    def stats(self) -> dict[str, int]:
        """Count rows per :class:`MediaStatus`, plus ``total``."""
        counts = {status.value: 0 for status in MediaStatus}
        total = 0
        for entry in self.entries():
            counts[entry.status.value] += 1
            total += 1
        counts["total"] = total
        return counts

    # -- writes ------------------------------------------------------------

    def upsert(
        self,
        source_block_id: str,
        source_url: str,
        status: MediaStatus,
        target_asset_ref: str | None = None,
        asset_url: str | None = None,
    ) -> MediaEntry:
        """Create or replace the row for *source_block_id*.

        A successful status resets the error counters.
        """
        entry, _displaced = self._write(source_block_id, source_url, status, target_asset_ref, asset_url)
        return entry

    def swap_asset(
        self,
        source_block_id: str,
        source_url: str,
        status: MediaStatus,
        target_asset_ref: str | None = None,
        asset_url: str | None = None,
    ) -> str | None:
        """Upsert like :meth:`upsert` and return the asset ref it displaced.

        The displaced ref is read inside the same atomic update, so of two
        overlapping acquisitions of one block the later writer always sees
        the earlier writer's asset.  ``None`` when the row held no asset or
        already held *target_asset_ref*.
        """
        _entry, displaced = self._write(source_block_id, source_url, status, target_asset_ref, asset_url)
        return displaced

    def _write(
        self,
        source_block_id: str,
        source_url: str,
        status: MediaStatus,
        target_asset_ref: str | None,
        asset_url: str | None,
    ) -> tuple[MediaEntry, str | None]:
        now = self._clock()
        displaced: str | None = None

        def mutate(record: dict[str, Any] | None) -> dict[str, Any]:
            nonlocal displaced
            entry = MediaEntry.from_dict(record) if record is not None else MediaEntry(
                source_block_id=source_block_id,
                fingerprint="",
                source_url=source_url,
                registered_at=now,
            )
            if entry.target_asset_ref and entry.target_asset_ref != target_asset_ref:
                displaced = entry.target_asset_ref
            else:
                displaced = None
            entry.fingerprint = fingerprint(source_url)
            entry.source_url = source_url
            entry.status = status
            entry.target_asset_ref = target_asset_ref
            entry.asset_url = asset_url
            if status in (MediaStatus.ACQUIRED, MediaStatus.UNSUPPORTED):
                entry.error_count = 0
                entry.last_error = None
            entry.updated_at = now
            return entry.to_dict()

        entry = MediaEntry.from_dict(self._store.update(MEDIA, source_block_id, mutate))
        return entry, displaced

    def mark_pending(
        self,
        source_block_id: str,
        source_url: str,
        stale_after: timedelta | None = None,
    ) -> bool:
        """Claim *source_block_id* for a background acquisition.

        Returns ``False`` when the block is already pending for the same
        fingerprint (another sync queued it), ``True`` when this caller
        won the claim and must enqueue the task.  A pending claim last
        touched more than *stale_after* ago counts as abandoned and is
        claimed again.  An existing stored asset is kept on the row until
        the replacement lands.
        """
        wanted = fingerprint(source_url)
        now = self._clock()
        claimed = False

        def mutate(record: dict[str, Any] | None) -> dict[str, Any] | None:
            nonlocal claimed
            if record is not None:
                entry = MediaEntry.from_dict(record)
                if entry.status == MediaStatus.PENDING and entry.fingerprint == wanted:
                    stale = (
                        stale_after is not None
                        and entry.updated_at is not None
                        and now - entry.updated_at > stale_after
                    )
                    if not stale:
                        return None
                    log.warning(
                        "Reclaiming abandoned pending media",
                        extra={"extra_fields": {"source_block_id": source_block_id}},
                    )
            else:
                entry = MediaEntry(
                    source_block_id=source_block_id,
                    fingerprint=wanted,
                    source_url=source_url,
                    registered_at=now,
                )
            entry.fingerprint = wanted
            entry.source_url = source_url
            entry.status = MediaStatus.PENDING
            entry.updated_at = now
            claimed = True
            return entry.to_dict()

        self._store.update(MEDIA, source_block_id, mutate)
        return claimed

    def mark_failed(self, source_block_id: str, source_url: str, error: str) -> MediaEntry:
        """Record a failed acquisition attempt."""
        now = self._clock()

        def mutate(record: dict[str, Any] | None) -> dict[str, Any]:
            entry = MediaEntry.from_dict(record) if record is not None else MediaEntry(
                source_block_id=source_block_id,
                fingerprint=fingerprint(source_url),
                source_url=source_url,
                registered_at=now,
            )
            entry.status = MediaStatus.FAILED
            entry.error_count += 1
            entry.last_error = error
            entry.updated_at = now
            return entry.to_dict()

        return MediaEntry.from_dict(self._store.update(MEDIA, source_block_id, mutate))

    def delete(self, source_block_id: str) -> bool:
        return self._store.delete(MEDIA, source_block_id)

    def cleanup_orphaned(self, asset_exists: Callable[[str], bool]) -> int:
        """Delete acquired rows whose asset no longer exists on the target.

        Returns the number of rows removed.
        """
        removed = 0
        for entry in list(self.entries()):
            if entry.status != MediaStatus.ACQUIRED or not entry.target_asset_ref:
                continue
            if not asset_exists(entry.target_asset_ref) and self.delete(entry.source_block_id):
                removed += 1
        if removed:
            log.info(
                "Removed orphaned media rows",
                extra={"extra_fields": {"removed": removed}},
            )
        return removed
