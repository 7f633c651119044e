"""Helpers for the source platform's pre-signed, time-limited file URLs."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit, urlunsplit


def strip_query(url: str) -> str:
    """Return *url* without its query string and fragment.

    Pre-signed URLs rotate their signature query on every fetch while the
    path stays stable, so the stripped form identifies the underlying file.
    """
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def url_expires_at(url: str) -> datetime | None:
    """Return the expiry time encoded in ``X-Amz-Date`` + ``X-Amz-Expires``."""
    query = parse_qs(urlsplit(url).query)
    raw_date = (query.get("X-Amz-Date") or [None])[0]
    raw_expires = (query.get("X-Amz-Expires") or [None])[0]
    if not raw_date or not raw_expires:
        return None
    try:
        signed_at = datetime.strptime(raw_date, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
        lifetime = int(raw_expires)
    except ValueError:
        return None
    return signed_at + timedelta(seconds=lifetime)


def is_url_expired(
    url: str,
    now: datetime | None = None,
    buffer_seconds: int = 300,
) -> bool:
    """Return ``True`` when a pre-signed *url* is expired or about to be.

    URLs without signature parameters never expire.
    """
    expires_at = url_expires_at(url)
    if expires_at is None:
        return False
    current = now or datetime.now(timezone.utc)
    return current >= expires_at - timedelta(seconds=buffer_seconds)
