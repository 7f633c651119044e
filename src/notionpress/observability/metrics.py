"""Metrics hook protocol and no-op default implementation.

notionpress emits counters and timings around source requests, block
conversion, media acquisition, document syncs, link repair and batch
processing.  The default :class:`NoopMetricsHook` discards everything;
supply any object satisfying :class:`MetricsHook` through
``NotionpressConfig.metrics`` to route them to StatsD, Prometheus or similar.

Emitted metric names:

* ``notionpress.requests_total``            -- counter
* ``notionpress.retries_total``             -- counter
* ``notionpress.rate_limited_total``        -- counter
* ``notionpress.request_duration_ms``       -- timing
* ``notionpress.rate_limit_wait_ms``        -- timing
* ``notionpress.unsupported_blocks_total``  -- counter
* ``notionpress.conversion_errors_total``   -- counter
* ``notionpress.media_acquired_total``      -- counter
* ``notionpress.media_failed_total``        -- counter
* ``notionpress.media_deferred_total``      -- counter
* ``notionpress.documents_synced_total``    -- counter
* ``notionpress.sync_failures_total``       -- counter
* ``notionpress.sync_duration_ms``          -- timing
* ``notionpress.links_rewritten_total``     -- counter
* ``notionpress.batch_items_total``         -- counter
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Default metrics implementation that silently discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass


def resolve_metrics(metrics: Any | None) -> MetricsHook:
    """Return *metrics* or a shared no-op hook when it is ``None``."""
    return metrics if metrics is not None else _NOOP


_NOOP = NoopMetricsHook()
