from __future__ import annotations

import threading
import time
import uuid

from m3ufilter import config


class PlaylistCache:
    """Short-lived in-memory store of fetched playlist text, keyed by an opaque id."""

    def __init__(self, ttl_seconds: float | None = None, clock=time.monotonic):
        self.ttl_seconds = config.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._items: dict[str, tuple[float, str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_key() -> str:
        return f"pl-{uuid.uuid4().hex}"

    def put(self, text: str) -> str:
        key = self.new_key()
        self.set(key, text)
        return key

    def set(self, key: str, text: str) -> None:
        now = self._clock()
        with self._lock:
            # every write also sweeps expired entries
            self._drop_expired(now)
            self._items[key] = (now + self.ttl_seconds, text)

    def get(self, key: str | None) -> str | None:
        if not key:
            return None
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            expires, text = item
            if self._clock() >= expires:
                del self._items[key]
                return None
            return text

    def _drop_expired(self, now: float) -> int:
        stale = [k for k, (expires, _) in self._items.items() if now >= expires]
        for key in stale:
            del self._items[key]
        return len(stale)

    def purge(self) -> int:
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
