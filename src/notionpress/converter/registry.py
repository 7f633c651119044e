"""Ordered, predicate-matched converter dispatch.

Converters are tried in registration order and the first whose predicate
accepts the block wins.  The fallback converter always sits after every
registered converter, so dispatch is total: any block, including types
added to the source platform later, produces output.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .base import BlockConverter, ConversionContext, ConverterOutput
from .blocks.fallback import FallbackConverter

Predicate = Callable[[dict[str, Any]], bool]


def type_is(*block_types: str) -> Predicate:
    """Return a predicate matching blocks whose ``type`` is one of *block_types*."""
    wanted = frozenset(block_types)
    return lambda block: block.get("type") in wanted


class ConverterRegistry:
    """Registry of ``(predicate, converter)`` pairs.

    Parameters
    ----------
    fallback:
        Converter used when no predicate matches.  Defaults to
        :class:`~notionpress.converter.blocks.fallback.FallbackConverter`.
    """

    def __init__(self, fallback: BlockConverter | None = None) -> None:
        self._entries: list[tuple[Predicate, BlockConverter]] = []
        self._fallback: BlockConverter = fallback or FallbackConverter()

    @property
    def fallback(self) -> BlockConverter:
        return self._fallback

    def __len__(self) -> int:
        return len(self._entries)

    def register(self, predicate: Predicate, converter: BlockConverter) -> None:
        """Append *converter*, selected when *predicate* accepts a block."""
        self._entries.append((predicate, converter))

    def register_converter(self, converter: BlockConverter) -> None:
        """Append *converter* using its own :meth:`supports` as predicate."""
        self.register(converter.supports, converter)

    def converter_for(self, block: dict[str, Any]) -> BlockConverter:
        """Return the first converter accepting *block*, or the fallback."""
        for predicate, converter in self._entries:
            if predicate(block):
                return converter
        return self._fallback

    def convert(self, block: dict[str, Any], ctx: ConversionContext) -> ConverterOutput:
        """Dispatch *block* without any error handling (see the engine)."""
        return self.converter_for(block).convert(block, ctx)


def default_registry() -> ConverterRegistry:
    """Return a registry holding every built-in converter."""
    from .blocks import builtin_converters

    registry = ConverterRegistry()
    for converter in builtin_converters():
        registry.register_converter(converter)
    return registry
