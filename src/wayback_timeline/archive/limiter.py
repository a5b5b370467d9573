"""FIFO admission limiter for outbound snapshot fetches.

Bounds the number of concurrently executing tasks to a fixed capacity.  Excess
callers wait in arrival order; when a running task finishes its slot is
handed directly to the longest-waiting caller, so a caller arriving later can
never overtake one that is already queued.

Typical usage::

    limiter = AdmissionLimiter(capacity=5)
    record = await limiter.run(lambda: extractor.extract(capture))

The limiter is owned by the application (``app.state.limiter``) and only
touched from the event loop thread.  Each check-then-act sequence below runs
without an intervening ``await``, which is what keeps it atomic.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdmissionLimiter:
    """Concurrency gate with a strict FIFO wait queue.

    Args:
        capacity: Maximum number of tasks executing at once.

    Raises:
        ValueError: If *capacity* is smaller than 1.
    """

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def running(self) -> int:
        """Number of slots currently held."""
        return self._running

    @property
    def waiting(self) -> int:
        """Number of callers queued for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def run(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run *task* once a slot is free and return its result.

        The slot is released however *task* ends (result, exception or
        cancellation).

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            Whatever *task* returns.
        """
        await self._acquire()
        try:
            return await task()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self._capacity and not self._waiters:
            self._running += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(
            "wayback: admission limiter full (%d/%d), %d queued",
            self._running,
            self._capacity,
            len(self._waiters),
        )
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before the cancellation landed.
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand-off: the slot moves to the waiter, running stays the same.
                waiter.set_result(None)
                return
        self._running -= 1
