from __future__ import annotations

import logging
from datetime import datetime, timezone
from urllib.parse import parse_qs, unquote, urlparse

from dateutil import parser as dtparser

logger = logging.getLogger(__name__)

DEFAULT_NAME = "playlist"

EXPIRY_KEYS = ["exp", "expires", "expiry", "end", "validto", "valid_to", "until"]


def derive_playlist_name(url: str | None = None) -> str:
    if not url or not url.strip():
        return DEFAULT_NAME
    try:
        u = urlparse(url.strip())
        host = u.hostname
    except ValueError:
        return DEFAULT_NAME
    if not u.scheme or not u.netloc:
        return DEFAULT_NAME

    segments = [s for s in u.path.split("/") if s]
    if segments:
        last = unquote(segments[-1]).strip()
        if last:
            return last
    return host or DEFAULT_NAME


def guess_expiry(url: str | None) -> datetime | None:
    """Best-effort expiry date from the query string of a panel URL."""
    if not url:
        return None
    try:
        qs = parse_qs(urlparse(url).query)
    except ValueError:
        return None

    lowered = {k.lower(): v for k, v in qs.items()}
    for key in EXPIRY_KEYS:
        raw = (lowered.get(key) or [None])[0]
        if not raw:
            continue
        dt = _parse_expiry_value(raw)
        if dt:
            return dt
    return None


def _parse_expiry_value(raw: str) -> datetime | None:
    raw = raw.strip()
    if not raw:
        return None

    if raw.isdigit():
        n = int(raw)
        if n > 10_000_000_000:
            n = n // 1000
        try:
            return datetime.fromtimestamp(n, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Ignoring out-of-range expiry timestamp %s", raw)
            return None

    try:
        dt = dtparser.parse(raw)
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
