"""
AI Relay - Connection Pool
Bounds concurrent outbound AI calls; excess callers wait in arrival order.
"""

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import Deque, Optional

from errors import RequestTimeoutError


class ConnectionPool:
    """Counting semaphore with strict FIFO hand-off.

    A release never lets a newcomer jump the queue: if anyone is waiting, the
    freed slot goes straight to the head of the queue and ``active`` stays put.
    """

    def __init__(self, max_connections: int = 15, acquire_timeout: Optional[float] = None):
        if max_connections < 1:
            raise ValueError("max_connections must be at least 1")
        self.max_connections = max_connections
        self.acquire_timeout = acquire_timeout
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()
        self._total_acquired = 0
        self._peak_active = 0
        self._timeouts = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def queued(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    async def acquire(self, timeout: Optional[float] = None) -> None:
        """Take a slot, waiting behind earlier callers if the pool is full.

        Waits forever unless ``timeout`` (or the pool's ``acquire_timeout``)
        is set, in which case RequestTimeoutError is raised and the caller
        leaves the queue.
        """
        timeout = self.acquire_timeout if timeout is None else timeout

        if self._active < self.max_connections and not self._waiters:
            self._grant()
            return

        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            if timeout is None:
                await fut
            else:
                await asyncio.wait_for(fut, timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError) as exc:
            if fut.done() and not fut.cancelled():
                # Slot was handed over just as we gave up; pass it on
                self.release()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            if isinstance(exc, asyncio.TimeoutError):
                self._timeouts += 1
                raise RequestTimeoutError(
                    f"No connection slot within {timeout}s "
                    f"({self._active}/{self.max_connections} busy)"
                ) from exc
            raise

    def release(self) -> None:
        """Give a slot back, handing it to the longest waiter if there is one."""
        if self._active <= 0:
            raise RuntimeError("release() called without a matching acquire()")

        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # active is unchanged: the slot moves directly to the waiter
                self._total_acquired += 1
                fut.set_result(None)
                return

        self._active -= 1

    @asynccontextmanager
    async def slot(self, timeout: Optional[float] = None):
        """``async with pool.slot():`` - acquire, and always release on exit."""
        await self.acquire(timeout)
        try:
            yield self
        finally:
            self.release()

    def _grant(self):
        self._active += 1
        self._total_acquired += 1
        self._peak_active = max(self._peak_active, self._active)

    def get_stats(self) -> dict:
        return {
            "active": self._active,
            "queued": self.queued,
            "max": self.max_connections,
            "total_acquired": self._total_acquired,
            "peak_active": self._peak_active,
            "timeouts": self._timeouts,
        }
