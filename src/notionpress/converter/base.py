"""Converter contract and the per-conversion context shared by converters.

A converter answers two questions about a block: whether it handles it
(:meth:`BlockConverter.supports`) and what markup it becomes
(:meth:`BlockConverter.convert`).  ``convert`` returns either a finished
string or a :class:`Shell`; for a shell the engine converts the block's
children itself and splices them between ``opening`` and ``closing``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

from notionpress.config import NotionpressConfig
from notionpress.models import ConversionWarning, LinkKind

from .rich_text import render_rich_text

if TYPE_CHECKING:
    from notionpress.links.resolver import LinkResolver
    from notionpress.media.pipeline import MediaAcquisitionPipeline


@dataclass(frozen=True)
class Shell:
    """Opening and closing markup of a container block."""

    opening: str
    closing: str


ConverterOutput = Union[str, Shell]


@runtime_checkable
class BlockConverter(Protocol):
    """Protocol every block converter satisfies."""

    def supports(self, block: dict[str, Any]) -> bool:
        ...

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> ConverterOutput:
        ...


class TypeConverter:
    """Base class for converters selected by the block's ``type`` tag.

    Attributes
    ----------
    block_types:
        Type tags handled by the converter.
    consumes_children:
        ``True`` when the converter renders the block's children itself
        (tables render their rows); the engine then leaves them alone.
    """

    block_types: frozenset[str] = frozenset()
    consumes_children: bool = False

    def supports(self, block: dict[str, Any]) -> bool:
        return block.get("type") in self.block_types

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> ConverterOutput:
        raise NotImplementedError


def payload(block: dict[str, Any]) -> dict[str, Any]:
    """Return the type-specific payload of *block* (``block[block["type"]]``)."""
    data = block.get(block.get("type", ""), None)
    return data if isinstance(data, dict) else {}


def block_children(block: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the children attached to *block*, wherever the fetcher put them."""
    children = block.get("children")
    if children is None:
        children = payload(block).get("children")
    return list(children or [])


def color_class(prefix: str, color: str | None) -> str:
    """Map a source colour name to ``<prefix>-<colour>``.

    Background variants share the foreground class.
    """
    color = (color or "default").replace("_background", "")
    if color not in _COLORS:
        color = "default"
    return f"{prefix}-{color}"


_COLORS: frozenset[str] = frozenset({
    "default", "gray", "brown", "orange", "yellow",
    "green", "blue", "purple", "pink", "red",
})


@dataclass
class ConversionContext:
    """State shared by every converter during one tree conversion.

    Attributes
    ----------
    config:
        Shared configuration.
    resolver:
        Resolves internal links; ``None`` leaves links untouched.
    media:
        Media acquisition pipeline; ``None`` renders source URLs directly.
    source_id:
        Source document being converted, for diagnostics.
    defer_media:
        Acquire media through background tasks instead of inline.
    warnings:
        Non-fatal issues collected during the conversion.
    """

    config: NotionpressConfig
    resolver: LinkResolver | None = None
    media: MediaAcquisitionPipeline | None = None
    source_id: str | None = None
    defer_media: bool = False
    warnings: list[ConversionWarning] = field(default_factory=list)

    def rich_text(self, spans: list[dict[str, Any]] | None) -> str:
        resolve = self.resolver.resolve if self.resolver is not None else None
        return render_rich_text(spans, resolve)

    def document_url(
        self,
        source_id: str,
        title: str | None = None,
        kind: LinkKind | None = None,
    ) -> str:
        """URL to emit for a reference to another source document."""
        if self.resolver is None:
            from notionpress.links.resolver import source_url

            return source_url(source_id)
        return self.resolver.url_for(source_id, title=title, kind=kind)

    def warn(self, code: str, message: str, **context: Any) -> None:
        self.warnings.append(ConversionWarning(code=code, message=message, context=context))
