"""Capabilities consumed from the target content-management platform.

notionpress never persists documents or assets itself; it drives whatever
implements :class:`TargetPlatform`.  Document references (``target_ref``)
and asset references (``asset_ref``) are opaque strings owned by the
platform.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from notionpress.models import LocalFile


@runtime_checkable
class TargetPlatform(Protocol):
    """Protocol for the target platform's document store and asset store."""

    def create_or_update_document(self, fields: dict[str, Any]) -> str:
        """Create a document, or update it when ``fields["target_ref"]`` is set.

        *fields* carries ``target_ref`` (``None`` to create), ``title``,
        ``content``, ``status``, ``source_id``, ``last_edited_time`` and
        ``properties`` (property name to formatted markup, or ``bool`` for
        checkboxes).  Returns the document reference.  Raises on failure.
        """
        ...

    def get_document_content(self, target_ref: str) -> str | None:
        """Return the stored markup of a document, or ``None`` if it is gone."""
        ...

    def update_document_content(self, target_ref: str, content: str) -> None:
        """Replace only the markup of an existing document."""
        ...

    def resolve_permalink(self, target_ref: str) -> str | None:
        """Return the public URL of a document, or ``None`` if unresolvable."""
        ...

    def store_asset(self, file: LocalFile, metadata: dict[str, Any]) -> str:
        """Copy a downloaded file into the asset store, returning its reference."""
        ...

    def asset_url(self, asset_ref: str) -> str | None:
        """Return the public URL of a stored asset, or ``None`` if it is gone."""
        ...

    def delete_asset(self, asset_ref: str) -> None:
        """Remove an asset that has been superseded."""
        ...
