"""Retry decision logic and exponential backoff computation.

Pure functions used by :class:`~notionpress.notion_api.transport.NotionTransport`:

* :func:`is_retryable_status` -- whether a response status may succeed later.
* :func:`should_retry` -- decide whether a failed request is retryable.
* :func:`compute_backoff` -- compute the delay before the next attempt.
"""

from __future__ import annotations

import random

import httpx

# Rate limiting and transient gateway or server failures.
_RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def is_retryable_status(status_code: int) -> bool:
    """Return ``True`` for statuses a later attempt may turn into a success.

    Every other 4xx or 5xx status maps straight to a typed error.
    """
    return status_code in _RETRYABLE_STATUSES


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Decide whether a request should be retried.

    Parameters
    ----------
    status_code:
        HTTP status of the response, or ``None`` when no response arrived.
    exception:
        The transport exception, or ``None`` when a response arrived.
    attempt:
        The current attempt number (0-indexed).
    max_attempts:
        Maximum total attempts, including the first.

    Returns
    -------
    bool
        ``True`` if another attempt should be made.
    """
    if attempt + 1 >= max_attempts:
        return False

    if exception is not None:
        return isinstance(exception, _RETRYABLE_EXCEPTIONS)

    if status_code is not None:
        return is_retryable_status(status_code)

    return False


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Compute the delay before the next attempt.

    A server-provided ``Retry-After`` wins; otherwise the delay is
    ``base * 2**attempt`` capped at *maximum*.  With *jitter* the delay is
    scaled to between 50 % and 100 % of that value.
    """
    if retry_after is not None:
        delay = max(retry_after, 0.0)
    else:
        delay = min(base * (2 ** attempt), maximum)

    if jitter:
        delay *= 0.5 + random.random() * 0.5

    return delay
