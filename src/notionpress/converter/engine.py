"""Block Conversion Engine: block tree to target markup.

Depth-first walk over a block tree.  Each block is dispatched through the
:class:`~notionpress.converter.registry.ConverterRegistry`; container
converters return a :class:`~notionpress.converter.base.Shell` and the
engine converts the children itself, splicing their markup between the
opening and closing halves.

List items are the one case where siblings interact: converters exposing
``group_key``/``group_shell`` (see
:mod:`notionpress.converter.blocks.lists`) have adjacent items with the
same key wrapped in a shared list container when
``merge_list_items`` is on, and in one container each when it is off.

Usage::

    from notionpress.config import NotionpressConfig
    from notionpress.converter import BlockConversionEngine, ConversionContext

    config = NotionpressConfig()
    engine = BlockConversionEngine(config=config)
    result = engine.convert(blocks, ConversionContext(config))
    result.markup
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from notionpress.config import NotionpressConfig
from notionpress.errors import ErrorCode, NotionpressError, NotionpressInfrastructureError
from notionpress.models import ConversionResult
from notionpress.observability import get_logger, resolve_metrics

from .base import BlockConverter, ConversionContext, Shell, block_children
from .registry import ConverterRegistry, default_registry

log = get_logger("notionpress.converter.engine")

ChildrenLoader = Callable[[str], list[dict[str, Any]]]


class BlockConversionEngine:
    """Convert block trees into markup.

    Parameters
    ----------
    registry:
        Converter dispatch.  Defaults to :func:`default_registry`.
    config:
        Shared configuration.
    children_loader:
        Called with a block id to fetch children for blocks flagged
        ``has_children`` that arrive without them (typically
        :meth:`~notionpress.notion_api.fetcher.ContentFetcher.load_children`).
        Without a loader such blocks are treated as having no children.
    metrics:
        Optional :class:`~notionpress.observability.MetricsHook`; defaults
        to ``config.metrics``.
    """

    def __init__(
        self,
        registry: ConverterRegistry | None = None,
        config: NotionpressConfig | None = None,
        children_loader: ChildrenLoader | None = None,
        metrics: object | None = None,
    ) -> None:
        self._config = config or NotionpressConfig()
        self._registry = registry or default_registry()
        self._load_children = children_loader
        self._metrics = resolve_metrics(metrics if metrics is not None else self._config.metrics)

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def convert(
        self,
        blocks: list[dict[str, Any]],
        ctx: ConversionContext | None = None,
    ) -> ConversionResult:
        """Convert a whole block tree.

        Parameters
        ----------
        blocks:
            Top-level blocks, with or without children attached.
        ctx:
            Conversion context; a bare one is created when omitted.

        Returns
        -------
        ConversionResult
            The markup plus the warnings collected in ``ctx``.

        Raises
        ------
        NotionpressInfrastructureError
            When a converter needs a dependency that is unavailable.  Every
            other per-block failure degrades to fallback markup.
        """
        if ctx is None:
            ctx = ConversionContext(self._config)
        markup = self.render_blocks(blocks, ctx)
        return ConversionResult(markup=markup, warnings=list(ctx.warnings))

    def render_blocks(
        self,
        blocks: list[dict[str, Any]],
        ctx: ConversionContext,
        depth: int = 0,
    ) -> str:
        """Render a sibling list, grouping adjacent list items."""
        parts: list[str] = []
        group: list[str] = []
        group_key: str | None = None
        group_shell: Shell | None = None

        def flush() -> None:
            nonlocal group, group_key, group_shell
            if group and group_shell is not None:
                parts.append(group_shell.opening + "".join(group) + group_shell.closing)
            group, group_key, group_shell = [], None, None

        for block in blocks:
            converter = self._registry.converter_for(block)
            key = _group_key(converter, block)
            if key is None:
                flush()
                parts.append(self.render_block(block, ctx, depth, converter))
                continue

            item = self.render_block(block, ctx, depth, converter)
            if not self._config.merge_list_items or key != group_key:
                flush()
                group_key = key
                group_shell = converter.group_shell(block)  # type: ignore[attr-defined]
            group.append(item)
        flush()
        return "".join(parts)

    def render_block(
        self,
        block: dict[str, Any],
        ctx: ConversionContext,
        depth: int = 0,
        converter: BlockConverter | None = None,
    ) -> str:
        """Render one block, its children included."""
        if converter is None:
            converter = self._registry.converter_for(block)
        output = self._dispatch(converter, block, ctx)

        if getattr(converter, "consumes_children", False):
            return output if isinstance(output, str) else output.opening + output.closing

        children = self._children(block, depth)
        inner = self.render_blocks(children, ctx, depth + 1) if children else ""
        if isinstance(output, Shell):
            return output.opening + inner + output.closing
        return output + inner

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(
        self,
        converter: BlockConverter,
        block: dict[str, Any],
        ctx: ConversionContext,
    ) -> str | Shell:
        fallback = self._registry.fallback
        if converter is fallback:
            return fallback.convert(block, ctx)
        try:
            return converter.convert(block, ctx)
        except NotionpressInfrastructureError:
            raise
        except Exception as exc:
            block_type = block.get("type", "unknown")
            code = exc.code if isinstance(exc, NotionpressError) else ErrorCode.CONVERSION_ERROR
            if isinstance(code, ErrorCode):
                code = code.value
            log.error(
                "Block conversion failed",
                extra={
                    "extra_fields": {
                        "block_type": block_type,
                        "block_id": block.get("id"),
                        "source_id": ctx.source_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    }
                },
            )
            self._metrics.increment(
                "notionpress.conversion_errors_total", tags={"block_type": str(block_type)},
            )
            ctx.warn(
                str(code),
                f"Converter for {block_type} failed: {exc}",
                block_type=block_type,
                block_id=block.get("id"),
            )
            return fallback.convert(block, ctx)

    def _children(self, block: dict[str, Any], depth: int) -> list[dict[str, Any]]:
        children = block_children(block)
        if children or "children" in block:
            return children
        if not block.get("has_children") or self._load_children is None:
            return []
        if block.get("type") in ("child_page", "child_database"):
            return []
        block_id = block.get("id")
        if not block_id or depth + 1 > self._config.max_block_depth:
            return []
        try:
            children = self._load_children(block_id)
        except NotionpressError as exc:
            log.warning(
                "Failed to load block children",
                extra={"extra_fields": {"block_id": block_id, "error": exc.message}},
            )
            children = []
        block["children"] = children
        return children


def _group_key(converter: BlockConverter, block: dict[str, Any]) -> str | None:
    key_fn = getattr(converter, "group_key", None)
    return key_fn(block) if key_fn is not None else None
