"""Narrow key-value store interface shared by every stateful component.

Records live in namespaces, one per record type, keyed by a stable id:

* :data:`BATCHES` -- one Batch record per ``batch_id``;
* :data:`MAPPINGS` -- one Document Mapping per normalised ``source_id``;
* :data:`LINKS` -- one Link Registry row per normalised ``source_id``;
* :data:`MEDIA` -- one Media Registry row per ``source_block_id``;
* :data:`LINK_SLUGS` -- slug to ``source_id`` index enforcing slug uniqueness.

Values are JSON-compatible dicts.  :meth:`Store.update` is the only way
shared records are mutated; implementations must run the read, the
mutator and the write as one atomic step so racing task callbacks never
lose each other's updates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Protocol, runtime_checkable

BATCHES = "batches"
MAPPINGS = "mappings"
LINKS = "links"
MEDIA = "media"
LINK_SLUGS = "link_slugs"

Mutator = Callable[[dict[str, Any] | None], dict[str, Any] | None]


@runtime_checkable
class Store(Protocol):
    """Protocol every persistence backend must satisfy."""

    def get(self, namespace: str, key: str) -> dict[str, Any] | None:
        """Return a copy of the record, or ``None`` when absent."""
        ...

    def put(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        """Insert or overwrite a record."""
        ...

    def update(self, namespace: str, key: str, mutator: Mutator) -> dict[str, Any] | None:
        """Atomically read, transform and write one record.

        *mutator* receives a copy of the current record (or ``None``) and
        returns the new record, or ``None`` to leave the store untouched.
        Returns the record as stored after the call.
        """
        ...

    def delete(self, namespace: str, key: str) -> bool:
        """Remove a record.  Returns ``True`` if it existed."""
        ...

    def scan(self, namespace: str) -> Iterator[tuple[str, dict[str, Any]]]:
        """Iterate over ``(key, record)`` pairs of a namespace."""
        ...
