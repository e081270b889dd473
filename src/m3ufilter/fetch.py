import logging
from urllib.parse import urlparse

import requests

from m3ufilter import config
from m3ufilter.errors import (
    FetchTimeoutError,
    InvalidSourceError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

_session = None


def get_session():
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({"User-Agent": config.USER_AGENT})
    return _session


def is_url(source):
    return "://" in (source or "")


def fetch_playlist_text(url, timeout=None):
    scheme = urlparse(url).scheme.lower()
    if scheme not in ("http", "https"):
        raise InvalidSourceError("Only http/https URLs are allowed")

    timeout = timeout or config.FETCH_TIMEOUT
    try:
        resp = get_session().get(url, timeout=timeout, allow_redirects=True)
    except requests.Timeout as e:
        logger.error(f"Timed out fetching {url}: {e}")
        raise FetchTimeoutError("Fetch timed out") from e
    except requests.RequestException as e:
        logger.error(f"Error fetching {url}: {e}")
        raise UpstreamError(f"Could not fetch playlist: {e}") from e

    if not resp.ok:
        logger.error(f"Upstream returned {resp.status_code} for {url}")
        raise UpstreamError(
            f"Upstream returned {resp.status_code}", status_code=resp.status_code
        )
    return resp.content.decode("utf-8-sig", errors="replace")


def read_playlist_file(path):
    try:
        with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
            return f.read()
    except FileNotFoundError as e:
        logger.error(f"File not found: {path}")
        raise InvalidSourceError(f"File not found: {path}") from e
    except IsADirectoryError as e:
        raise InvalidSourceError(f"Not a file: {path}") from e


def load_playlist_text(source, timeout=None):
    """Return the full text of a playlist given a URL or a local file path."""
    source = (source or "").strip()
    if not source:
        raise InvalidSourceError("No playlist source provided")
    if is_url(source):
        return fetch_playlist_text(source, timeout)
    return read_playlist_file(source)
