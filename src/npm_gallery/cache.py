"""In-memory TTL cache for upstream API responses.

Registries are slow and rate limited, so every HTTP client keeps one of
these in front of its GET endpoints. Entries carry their own TTL so a
single cache can hold search pages (minutes) next to bundle sizes (a day).

Example:
    cache = TTLCache(default_ttl=300, max_size=500)
    cache.set("search:react:0:20", payload)
    cache.set("bundle:react@18.2.0", size, ttl=86400)
    cache.get("search:react:0:20")  # payload, or None once expired
"""

from __future__ import annotations

import time
from typing import Any

from npm_gallery.constants import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS


class CacheEntry:
    """A cached value and the monotonic time it expires at."""

    __slots__ = ("expires_at", "value")

    def __init__(self, value: Any, ttl: float) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl

    def is_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else time.monotonic()) > self.expires_at


class TTLCache:
    """Bounded dict cache with per-entry expiry.

    Expired entries are dropped lazily on read and in bulk when the cache
    fills up; if it is still full, the oldest insertion is evicted.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        max_size: int = DEFAULT_CACHE_MAX_SIZE,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when `set` gets no explicit ttl.
            max_size: Maximum number of entries kept.
        """
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._max_size = max_size

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store a value.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Optional TTL override in seconds.
        """
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._evict_expired()
            if len(self._entries) >= self._max_size:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]

        self._entries[key] = CacheEntry(value, self._default_ttl if ttl is None else ttl)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every key starting with `prefix`.

        Returns:
            Number of entries removed.
        """
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def _evict_expired(self) -> None:
        now = time.monotonic()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        """Number of stored entries, including ones that expired but were not yet evicted."""
        return len(self._entries)
