"""HTTP transport for the source platform API.

Request lifecycle:

1. Acquire a token-bucket slot (wait if needed).
2. Send the request with auth and version headers.
3. On ``2xx`` -- return the parsed JSON body.
4. On ``429`` -- honour ``Retry-After`` and retry.
5. On ``5xx`` / network error -- back off exponentially and retry.
6. On other ``4xx`` -- raise the matching typed error immediately.
7. When attempts run out -- raise :class:`NotionpressRetryExhaustedError`.
"""

from __future__ import annotations

import json as _json
import sys
import time
from typing import Any

import httpx

from notionpress.config import NotionpressConfig
from notionpress.errors import (
    NotionpressAuthError,
    NotionpressNetworkError,
    NotionpressNotFoundError,
    NotionpressPermissionError,
    NotionpressRetryExhaustedError,
    NotionpressValidationError,
)
from notionpress.observability import get_logger, resolve_metrics
from notionpress.utils.redact import redact

from .rate_limit import TokenBucket
from .retries import compute_backoff, is_retryable_status, should_retry

log = get_logger("notionpress.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the typed error for a non-retryable ``4xx`` response."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    api_message = body.get("message", response.text[:500])
    api_code = body.get("code", "")
    ctx: dict[str, Any] = {"status_code": status, "api_code": api_code}

    if status == 401:
        raise NotionpressAuthError(
            message=f"Authentication failed on {method} {path}: {api_message}",
            context=ctx,
        )
    if status == 403:
        raise NotionpressPermissionError(
            message=f"Permission denied on {method} {path}: {api_message}",
            context={**ctx, "operation": f"{method} {path}"},
        )
    if status == 404:
        raise NotionpressNotFoundError(
            message=f"Resource not found on {method} {path}: {api_message}",
            context={**ctx, "path": path},
        )
    raise NotionpressValidationError(
        message=f"Client error {status} on {method} {path}: {api_message}",
        context={**ctx, "body": body},
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
    token: str | None = None,
) -> None:
    """Write a redacted request/response dump to stderr."""
    dump: dict[str, Any] = {"method": method, "url": url}
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(_json.dumps(redact(dump, token), indent=2, default=str), file=sys.stderr)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class NotionTransport:
    """Synchronous HTTP transport with auth, retry and rate limiting.

    Parameters
    ----------
    config:
        Controls base URL, credentials, retry policy and pacing.
    client:
        Optional pre-built :class:`httpx.Client`.  Tests pass one wired to
        an :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        config: NotionpressConfig,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._bucket = TokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = resolve_metrics(config.metrics)
        self._client = client or httpx.Client(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.notion_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute a request against the source API.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            Path relative to ``base_url`` (e.g. ``/pages/{id}``).
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``params=``, ``headers=``).

        Returns
        -------
        dict
            Parsed JSON body (``{}`` for empty responses).

        Raises
        ------
        NotionpressAuthError, NotionpressPermissionError, NotionpressNotFoundError
            On 401, 403 and 404.
        NotionpressValidationError
            On 400 and any other non-retryable 4xx.
        NotionpressNetworkError
            When the last attempt failed at the transport level.
        NotionpressRetryExhaustedError
            When every attempt received a retryable status.
        """
        max_attempts = self._config.retry_max_attempts
        last_status: int | None = None
        json_payload = kwargs.get("json")

        for attempt in range(max_attempts):
            wait = self._bucket.acquire()
            if wait > 0:
                self._metrics.timing(
                    "notionpress.rate_limit_wait_ms",
                    wait * 1000,
                    tags={"method": method},
                )

            t0 = time.monotonic()
            try:
                response = self._client.request(method, path, **kwargs)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                last_status = None
                self._metrics.increment(
                    "notionpress.requests_total",
                    tags={"method": method, "status": "error"},
                )
                log.warning(
                    "Source request network error",
                    extra={
                        "extra_fields": {
                            "method": method,
                            "path": path,
                            "attempt": attempt + 1,
                            "error": str(exc),
                        }
                    },
                )
                if not should_retry(None, exc, attempt, max_attempts):
                    raise NotionpressNetworkError(
                        message=f"Network error on {method} {path}: {exc}",
                        context={"url": path, "attempt": attempt + 1},
                        cause=exc,
                    ) from exc
                self._sleep_before_retry(attempt, method, "network_error")
                continue

            elapsed_ms = (time.monotonic() - t0) * 1000
            last_status = response.status_code
            status_tag = str(response.status_code)
            self._metrics.increment(
                "notionpress.requests_total",
                tags={"method": method, "status": status_tag},
            )
            self._metrics.timing(
                "notionpress.request_duration_ms",
                elapsed_ms,
                tags={"method": method, "status": status_tag},
            )
            if self._config.debug_dump_payload:
                self._debug_dump(method, response, json_payload)

            if 200 <= response.status_code < 300:
                if response.status_code == 204 or not response.content:
                    return {}
                result: dict = response.json()
                return result

            if not is_retryable_status(response.status_code):
                _raise_for_status(response, method, path)

            if not should_retry(response.status_code, None, attempt, max_attempts):
                break

            retry_after: float | None = None
            reason = "server_error"
            if response.status_code == 429:
                retry_after = _parse_retry_after(response)
                reason = "rate_limited"
                self._metrics.increment("notionpress.rate_limited_total", tags={"method": method})
                log.warning(
                    "Rate limited by source API",
                    extra={
                        "extra_fields": {
                            "method": method,
                            "path": path,
                            "retry_after": retry_after,
                            "attempt": attempt + 1,
                        }
                    },
                )
            self._sleep_before_retry(attempt, method, reason, retry_after)

        ctx: dict[str, Any] = {"attempts": max_attempts, "last_status_code": last_status}
        raise NotionpressRetryExhaustedError(
            message=(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context=ctx,
        )

    def _sleep_before_retry(
        self,
        attempt: int,
        method: str,
        reason: str,
        retry_after: float | None = None,
    ) -> None:
        delay = compute_backoff(
            attempt,
            base=self._config.retry_base_delay,
            maximum=self._config.retry_max_delay,
            jitter=self._config.retry_jitter,
            retry_after=retry_after,
        )
        self._metrics.increment(
            "notionpress.retries_total",
            tags={"method": method, "reason": reason},
        )
        time.sleep(delay)

    def _debug_dump(self, method: str, response: httpx.Response, json_payload: Any) -> None:
        try:
            body = response.json()
        except ValueError:
            body = response.text[:1000]
        _dump_payload(
            method, str(response.url), json_payload,
            response.status_code, body,
            token=self._config.token,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> NotionTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
