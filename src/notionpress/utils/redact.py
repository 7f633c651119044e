"""Token and signed-URL redaction for safe logging.

Debug dumps of source API traffic and log records about media downloads
pass through these helpers first:

* values under credential-like keys are masked, showing at most the last
  four characters of the token;
* ``Bearer <token>`` fragments are masked wherever they appear;
* query strings of pre-signed URLs (``X-Amz-Signature`` and friends) are
  replaced so time-limited credentials never reach a log sink;
* raw ``bytes`` are replaced with ``<binary:N_bytes>``.
"""

from __future__ import annotations

import copy
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "authorization",
    "cookie",
    "api_key",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")
_SIGNED_QUERY_RE = re.compile(r"(?i)x-amz-(signature|credential|security-token)=")


def redact_url(url: str) -> str:
    """Drop the query string of a pre-signed URL, keep every other URL."""
    if not _SIGNED_QUERY_RE.search(url):
        return url
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "<signed>", ""))


def _mask(value: str, token: str | None) -> str:
    if token and token in value:
        suffix = token[-4:] if len(token) >= 4 else "****"
        placeholder = f"<redacted:...{suffix}>"
        if token in placeholder:
            placeholder = "<redacted>"
        value = value.replace(token, placeholder)
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def _redact_value(value: Any, token: str | None) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, token)
    if isinstance(value, list):
        return [_redact_value(item, token) for item in value]
    if isinstance(value, str):
        return redact_url(_mask(value, token))
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    return value


def _redact_dict(d: dict, token: str | None) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            result[key] = _mask(value, token) if isinstance(value, str) else "<redacted>"
        else:
            result[key] = _redact_value(value, token)
    return result


def redact(payload: dict, token: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        Request/response dump, header dict, or log context.
    token:
        The source integration token.  Every occurrence is masked.

    Examples
    --------
    >>> redact({"Authorization": "Bearer ntn_abc123"})
    {'Authorization': 'Bearer <redacted>'}
    """
    return _redact_dict(copy.deepcopy(payload), token)
