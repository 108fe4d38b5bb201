from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Sequence

from .post import Post

CACHE_KEY_PREFIX = "instagram"


def cache_key(handle: str, limit: int) -> str:
    return f"{CACHE_KEY_PREFIX}:{handle}:{int(limit)}"


def _handle_prefix(handle: str) -> str:
    return f"{CACHE_KEY_PREFIX}:{handle}:"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: tuple[Post, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class PostCache:
    """
    In-memory post cache with per-entry expiry.

    Expired entries are purged lazily when read. Empty results are never stored so
    that a transient empty scrape is retried on the next request.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 900.0,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        self._default_ttl = float(default_ttl_seconds)
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> tuple[Post, ...] | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(
        self,
        key: str,
        posts: Sequence[Post],
        *,
        ttl_seconds: float | None = None,
    ) -> bool:
        value = tuple(posts)
        if not value:
            return False

        ttl = self._default_ttl if ttl_seconds is None else float(ttl_seconds)
        if ttl <= 0:
            return False

        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=self._clock() + ttl,
            )
        return True

    def invalidate(self, handle: str) -> int:
        """Remove every entry derived from handle, whatever its limit."""
        prefix = _handle_prefix(handle)
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def invalidate_all(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed
