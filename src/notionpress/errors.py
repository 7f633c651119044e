"""Full error hierarchy for notionpress.

Every public error class inherits from :class:`NotionpressError`. Each carries
a machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Errors fall into three operational categories:

* block-level conversion errors, absorbed by the conversion engine and
  degraded to fallback markup;
* document-level sync errors (fetch, persistence, invalid identifiers),
  absorbed by the sync manager and reported as a failed
  :class:`~notionpress.models.SyncResult`;
* infrastructure errors, which are always raised to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error notionpress can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    CONVERSION_ERROR = "CONVERSION_ERROR"
    UNSUPPORTED_BLOCK = "UNSUPPORTED_BLOCK"
    MEDIA_ERROR = "MEDIA_ERROR"
    MEDIA_TYPE_ERROR = "MEDIA_TYPE_ERROR"
    MEDIA_SIZE_ERROR = "MEDIA_SIZE_ERROR"
    INFRASTRUCTURE_ERROR = "INFRASTRUCTURE_ERROR"
    BATCH_NOT_FOUND = "BATCH_NOT_FOUND"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class NotionpressError(Exception):
    """Base exception for all notionpress errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


class _CodedError(NotionpressError):
    """Intermediate base whose subclasses pin a single :class:`ErrorCode`."""

    default_code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=self.default_code,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Source API / transport errors
# ---------------------------------------------------------------------------

class NotionpressValidationError(_CodedError):
    """Invalid input: a malformed identifier, an empty batch, or a 400 from
    the source API.

    Context keys: ``field``, ``value``, ``constraint``.
    """

    default_code = ErrorCode.VALIDATION_ERROR


class NotionpressAuthError(_CodedError):
    """The source API rejected the integration token (401)."""

    default_code = ErrorCode.AUTH_ERROR


class NotionpressPermissionError(_CodedError):
    """The integration lacks access to the requested resource (403).

    Context keys: ``operation``.
    """

    default_code = ErrorCode.PERMISSION_ERROR


class NotionpressNotFoundError(_CodedError):
    """The requested source resource does not exist (404).

    Context keys: ``path``.
    """

    default_code = ErrorCode.NOT_FOUND


class NotionpressRateLimitError(_CodedError):
    """The source API rate limit was exceeded (429).

    Context keys: ``retry_after_seconds``, ``attempt``.
    """

    default_code = ErrorCode.RATE_LIMITED


class NotionpressRetryExhaustedError(_CodedError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    default_code = ErrorCode.RETRY_EXHAUSTED


class NotionpressNetworkError(_CodedError):
    """A transport-level failure (DNS, connection reset, timeout).

    Context keys: ``url``, ``attempt``.
    """

    default_code = ErrorCode.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Sync errors
# ---------------------------------------------------------------------------

class NotionpressFetchError(_CodedError):
    """Document properties or blocks could not be retrieved from the source.

    Context keys: ``source_id``.
    """

    default_code = ErrorCode.FETCH_ERROR


class NotionpressPersistenceError(_CodedError):
    """A document or registry row could not be written.

    Context keys: ``source_id``, ``target_ref``; ``slug`` and ``attempts``
    when no free slug was left for a link entry.
    """

    default_code = ErrorCode.PERSISTENCE_ERROR


# ---------------------------------------------------------------------------
# Conversion errors
# ---------------------------------------------------------------------------

class NotionpressConversionError(NotionpressError):
    """A single block could not be converted.

    Context keys: ``block_type``, ``block_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.CONVERSION_ERROR,
    ) -> None:
        super().__init__(code=code, message=message, context=context, cause=cause)


class NotionpressUnsupportedBlockError(NotionpressConversionError):
    """No dedicated converter exists for a block type.

    Context keys: ``block_type``, ``block_id``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.UNSUPPORTED_BLOCK,
        )


# ---------------------------------------------------------------------------
# Media errors
# ---------------------------------------------------------------------------

class NotionpressMediaError(NotionpressError):
    """Base class for media acquisition failures.

    Context keys: ``source_block_id``, ``source_url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        code: str = ErrorCode.MEDIA_ERROR,
    ) -> None:
        super().__init__(code=code, message=message, context=context, cause=cause)


class NotionpressMediaTypeError(NotionpressMediaError):
    """The downloaded file has a MIME type outside the allowlist.

    Context keys: ``mime_type``, ``allowed_mimes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.MEDIA_TYPE_ERROR,
        )


class NotionpressMediaSizeError(NotionpressMediaError):
    """The downloaded file exceeds ``media_max_size_bytes``.

    Context keys: ``size_bytes``, ``max_bytes``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message=message,
            context=context,
            cause=cause,
            code=ErrorCode.MEDIA_SIZE_ERROR,
        )


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------

class NotionpressInfrastructureError(_CodedError):
    """A required collaborator (task queue, media pipeline) is unavailable.

    Never absorbed into a per-item result.

    Context keys: ``component``.
    """

    default_code = ErrorCode.INFRASTRUCTURE_ERROR


class NotionpressBatchNotFoundError(_CodedError):
    """No batch record exists for the given ``batch_id``.

    Context keys: ``batch_id``.
    """

    default_code = ErrorCode.BATCH_NOT_FOUND
