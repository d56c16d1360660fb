from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class AddressCache:
    """
    In-memory address cache with TTL, a size bound and hit/miss statistics.

    Features:
    - Keys are normalized (lowercased, stripped) location strings
    - Oldest-expiry eviction once ``max_entries`` is exceeded
    - Read-through ``get_or_load`` with single-flight: concurrent callers
      for one key share a single in-flight lookup
    - Only successful (non-None) lookups are stored
    """

    DEFAULT_TTL = 86400  # 24 hours
    MAX_CACHE_ENTRIES = 5000
    CLEANUP_INTERVAL = 300  # Drop expired entries every 5 minutes

    def __init__(self, ttl: Optional[int] = None, max_entries: Optional[int] = None) -> None:
        self.ttl = ttl or self.DEFAULT_TTL
        self.max_entries = max_entries or self.MAX_CACHE_ENTRIES
        self._cache: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self._last_cleanup = time.time()

    @staticmethod
    def normalize_key(key: str) -> str:
        return (key or "").strip().lower()

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expiry = time.time() + (ttl or self.ttl)
        with self._lock:
            self._cache[self.normalize_key(key)] = CacheEntry(value=value, expires_at=expiry)
            if len(self._cache) > self.max_entries:
                self._evict()

    def get(self, key: str) -> Any | None:
        key = self.normalize_key(key)
        with self._lock:
            self._maybe_cleanup()

            entry = self._cache.get(key)
            if not entry:
                self.misses += 1
                return None
            if entry.expires_at < time.time():
                self._cache.pop(key, None)
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any | None:
        """Return the cached value, or run ``loader`` once for all concurrent callers."""
        cached = self.get(key)
        if cached is not None:
            return cached

        key = self.normalize_key(key)
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._load(key, loader))
            self._inflight[key] = future
        else:
            logger.debug(f"Joining in-flight address lookup for '{key}'")
        # A cancelled caller must not cancel the lookup the others are waiting on
        return await asyncio.shield(future)

    async def _load(self, key: str, loader: Callable[[], Awaitable[Any]]) -> Any | None:
        try:
            value = await loader()
            if value is not None:
                self.set(key, value)
            return value
        finally:
            self._inflight.pop(key, None)

    def _evict(self) -> None:
        """Drop expired entries, then the oldest ones down to the bound (must hold lock)."""
        now = time.time()
        for key in [k for k, v in self._cache.items() if v.expires_at < now]:
            self._cache.pop(key, None)

        overflow = len(self._cache) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._cache.items(), key=lambda x: x[1].expires_at)
            for key, _ in oldest[:overflow]:
                self._cache.pop(key, None)

    def _maybe_cleanup(self) -> None:
        """Cleanup expired entries if interval elapsed (must hold lock)."""
        now = time.time()
        if now - self._last_cleanup < self.CLEANUP_INTERVAL:
            return
        self._evict()
        self._last_cleanup = now

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self.hits = 0
            self.misses = 0
            self._last_cleanup = time.time()

    def __len__(self) -> int:
        return len(self._cache)

    def get_stats(self) -> Dict[str, int | float]:
        with self._lock:
            total_requests = self.hits + self.misses
            hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0
            return {
                "keys": len(self._cache),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(hit_rate, 2),
                "inflight": len(self._inflight),
                "max_entries": self.max_entries,
                "ttl_seconds": self.ttl,
            }


def _build_default_cache() -> AddressCache:
    from ..config import get_settings

    settings = get_settings()
    return AddressCache(ttl=settings.address_cache_ttl, max_entries=settings.address_cache_max_entries)


address_cache = _build_default_cache()
