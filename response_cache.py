"""
AI Relay - Response Cache
Bounded in-memory cache with per-entry TTL and least-recently-used eviction.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import logger as log


@dataclass
class CacheEntry:
    """One cached value with its absolute expiry and access bookkeeping."""
    value: Any
    expires_at: float
    last_access: float
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResponseCache:
    """TTL cache keyed by request fingerprint.

    Expiry is checked on every read, and a background sweep removes entries
    nobody reads again. When full, inserting a new key evicts the entry with
    the oldest last access (recency only, hit counts don't matter).
    """

    def __init__(self, max_size: int = 500, ttl: float = 300.0,
                 cleanup_interval: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._cleanup_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, evicting the least recently used entry if full."""
        now = self._clock()
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_lru()

        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=now + ttl, last_access=now)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return None

        entry.hit_count += 1
        entry.last_access = self._clock()
        self._hits += 1
        return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without touching hit counts or recency."""
        return self._live_entry(key) is not None

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug(f"Swept {len(expired)} expired cache entries", "cache")
        return len(expired)

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def _evict_lru(self) -> None:
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].last_access)
        del self._entries[oldest_key]
        self._evictions += 1

    # --- Background sweep ---

    async def _cleanup_loop(self):
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cleanup()

    def start_cleanup(self) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())

    def stop_cleanup(self) -> None:
        """Cancel the periodic sweep."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    def get_stats(self) -> dict:
        """Read-only snapshot for status commands."""
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(hit_rate, 2),
            "evictions": self._evictions,
            "entry_hits": {k: e.hit_count for k, e in self._entries.items()},
        }
