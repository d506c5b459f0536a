"""
AI Relay - Rate Limiter
Sliding-window request counting per key.
"""

import asyncio
import time
from typing import Callable, Dict, List, Optional

import logger as log
from constants import RATE_LIMIT_STALE_AGE


class RateLimiter:
    """Sliding-window limiter keyed by arbitrary strings.

    One instance serves many independent policies by namespacing keys,
    e.g. ``ai_command:<user_id>`` for users and ``api:chat`` for outbound calls.
    """

    def __init__(self, window_seconds: float = 60.0, max_requests: int = 10,
                 cleanup_interval: float = 300.0,
                 stale_age: float = RATE_LIMIT_STALE_AGE,
                 clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.cleanup_interval = cleanup_interval
        self.stale_age = stale_age
        self._clock = clock
        self._windows: Dict[str, List[float]] = {}
        self._denied = 0
        self._cleanup_task: Optional[asyncio.Task] = None

    def check_limit(self, key: str, limit: Optional[int] = None,
                    window_seconds: Optional[float] = None) -> bool:
        """Record a request for ``key`` if it fits the window.

        Returns True (and records the request) when allowed, False when the
        key already has ``limit`` requests in the trailing window. Denied
        attempts are not recorded.
        """
        limit = self.max_requests if limit is None else limit
        window = self.window_seconds if window_seconds is None else window_seconds

        now = self._clock()
        window_start = now - window
        timestamps = [t for t in self._windows.get(key, []) if t > window_start]

        if len(timestamps) >= limit:
            self._windows[key] = timestamps
            self._denied += 1
            return False

        timestamps.append(now)
        self._windows[key] = timestamps
        return True

    def remaining(self, key: str, limit: Optional[int] = None,
                  window_seconds: Optional[float] = None) -> int:
        """How many more requests ``key`` may make right now (no side effects)."""
        limit = self.max_requests if limit is None else limit
        window = self.window_seconds if window_seconds is None else window_seconds
        window_start = self._clock() - window
        used = sum(1 for t in self._windows.get(key, []) if t > window_start)
        return max(0, limit - used)

    def reset(self, key: str) -> None:
        """Forget all history for a key."""
        self._windows.pop(key, None)

    def cleanup(self) -> int:
        """Drop keys whose whole history is older than the stale age."""
        now = self._clock()
        removed = 0
        for key in list(self._windows.keys()):
            recent = [t for t in self._windows[key] if now - t < self.stale_age]
            if recent:
                self._windows[key] = recent
            else:
                del self._windows[key]
                removed += 1
        if removed:
            log.debug(f"Dropped {removed} idle rate limit keys", "ratelimit")
        return removed

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
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            self._cleanup_task = None

    def get_stats(self) -> dict:
        return {
            "active_keys": len(self._windows),
            "total_requests": sum(len(ts) for ts in self._windows.values()),
            "denied": self._denied,
            "window_seconds": self.window_seconds,
            "max_requests": self.max_requests,
        }
