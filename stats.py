"""
AI Relay - Statistics Tracking
Tracks command timings, API calls, cache effectiveness, errors and process memory.
"""

import asyncio
import time
from collections import deque
from typing import Dict, Optional

import psutil

import logger as log
from constants import MEMORY_SAMPLE_INTERVAL, MEMORY_SAMPLE_LIMIT, MEMORY_WARN_MB

BYTES_PER_MB = 1024 * 1024


def format_uptime(seconds: float) -> str:
    """Format a duration as e.g. '2d 3h 4m', '5m 6s' or '7s'."""
    seconds = int(seconds)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)

    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class StatsManager:
    """In-memory bot statistics. Reset on restart."""

    def __init__(self, clock=time.monotonic, process: Optional[psutil.Process] = None,
                 memory_interval: float = MEMORY_SAMPLE_INTERVAL,
                 memory_limit: int = MEMORY_SAMPLE_LIMIT,
                 memory_warn_mb: float = MEMORY_WARN_MB):
        self._clock = clock
        self.started_at = clock()
        self.commands: Dict[str, dict] = {}  # {"ai": {"count", "total_ms", "avg_ms", "errors"}}
        self.api_calls = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.error_count = 0

        self._process = process
        self.memory_interval = memory_interval
        self.memory_warn_mb = memory_warn_mb
        self.memory_samples = deque(maxlen=memory_limit)
        self._memory_task: Optional[asyncio.Task] = None

    def _command(self, name: str) -> dict:
        if name not in self.commands:
            self.commands[name] = {"count": 0, "total_ms": 0.0, "avg_ms": 0.0, "errors": 0}
        return self.commands[name]

    def record_command(self, name: str, execution_ms: float):
        """Record one completed command execution with its timing."""
        row = self._command(name)
        row["count"] += 1
        row["total_ms"] += execution_ms
        row["avg_ms"] = row["total_ms"] / row["count"]

    def record_error(self, name: str = "unknown"):
        """Record an error, attributed to a command if it is being tracked."""
        self.error_count += 1
        if name in self.commands:
            self.commands[name]["errors"] += 1

    def record_api_call(self):
        self.api_calls += 1

    def record_cache_hit(self):
        self.cache_hits += 1

    def record_cache_miss(self):
        self.cache_misses += 1

    def get_cache_hit_rate(self) -> str:
        """Hit rate as a percentage string, e.g. '66.67%'."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return "0%"
        return f"{self.cache_hits / total * 100:.2f}%"

    def top_commands(self, limit: int = 10) -> list:
        """Most used commands first."""
        return sorted(self.commands.items(), key=lambda x: x[1]["count"], reverse=True)[:limit]

    # --- Memory ---

    @property
    def process(self) -> psutil.Process:
        if self._process is None:
            self._process = psutil.Process()
        return self._process

    def sample_memory(self) -> dict:
        """Take one RSS/VMS reading of this process and keep it in the ring."""
        info = self.process.memory_info()
        sample = {
            "timestamp": self._clock(),
            "rss_mb": round(info.rss / BYTES_PER_MB, 2),
            "vms_mb": round(info.vms / BYTES_PER_MB, 2),
        }
        self.memory_samples.append(sample)

        if sample["rss_mb"] > self.memory_warn_mb:
            log.warn(f"High memory usage: {sample['rss_mb']:.1f} MB RSS "
                     f"(threshold {self.memory_warn_mb:.0f} MB)", "stats")
        return sample

    def get_memory_usage(self) -> dict:
        """Current, peak and average RSS over the kept samples, in MB."""
        if not self.memory_samples:
            return {"current_mb": None, "peak_mb": None, "average_mb": None, "vms_mb": None, "samples": 0}

        rss = [s["rss_mb"] for s in self.memory_samples]
        latest = self.memory_samples[-1]
        return {
            "current_mb": latest["rss_mb"],
            "peak_mb": max(rss),
            "average_mb": round(sum(rss) / len(rss), 2),
            "vms_mb": latest["vms_mb"],
            "samples": len(rss),
        }

    async def _memory_loop(self):
        while True:
            try:
                self.sample_memory()
            except psutil.Error as e:
                log.error(f"Memory sample failed: {e}", "stats")
            await asyncio.sleep(self.memory_interval)

    def start_memory_sampling(self) -> None:
        """Sample now and then every ``memory_interval`` seconds (idempotent)."""
        if self._memory_task is None or self._memory_task.done():
            self._memory_task = asyncio.get_running_loop().create_task(self._memory_loop())

    def stop_memory_sampling(self) -> None:
        if self._memory_task is not None:
            self._memory_task.cancel()
            self._memory_task = None

    def get_summary(self) -> dict:
        """Get stats summary for the performance command."""
        return {
            "uptime": format_uptime(self._clock() - self.started_at),
            "commands": {name: dict(row) for name, row in self.commands.items()},
            "api": {
                "total_calls": self.api_calls,
                "cache_hits": self.cache_hits,
                "cache_misses": self.cache_misses,
                "cache_hit_rate": self.get_cache_hit_rate(),
            },
            "errors": self.error_count,
            "memory": self.get_memory_usage(),
        }


# Global instance
stats_manager = StatsManager()
