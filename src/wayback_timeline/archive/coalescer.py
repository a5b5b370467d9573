"""Single-flight coalescing of lookups per subject.

:class:`RequestCoalescer` guarantees that at most one pipeline runs for a
given subject at any moment.  A caller asking for a subject that is already
being looked up attaches to the running pipeline and receives its outcome:
the same result list, or the same exception instance.

The in-flight entry is removed as soon as the pipeline settles, whether it
succeeded or failed, so a later caller always triggers a fresh lookup rather
than inheriting a stale failure.

A caller that goes away (client disconnect, cancellation) does not stop the
pipeline: waiters attach through :func:`asyncio.shield`.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Awaitable, Callable

from wayback_timeline.api.metrics import coalesced_requests_total
from wayback_timeline.archive._records import ContentRecord

logger = logging.getLogger(__name__)

Pipeline = Callable[[str], Awaitable[list[ContentRecord]]]


class RequestCoalescer:
    """Shares one running pipeline between concurrent callers of a subject.

    The in-flight map is owned by the instance and only mutated from the
    event loop thread; lookup and insertion in :meth:`request` happen without
    an intervening ``await``.

    Args:
        pipeline: Coroutine function running the lookup for one subject,
            typically :meth:`FanoutCoordinator.run`.
    """

    def __init__(self, pipeline: Pipeline) -> None:
        self._pipeline = pipeline
        self._in_flight: dict[str, asyncio.Task[list[ContentRecord]]] = {}

    def in_flight(self, subject: str) -> bool:
        """Return ``True`` while a pipeline for *subject* is running."""
        task = self._in_flight.get(subject)
        return task is not None and not task.done()

    @property
    def in_flight_count(self) -> int:
        return sum(1 for task in self._in_flight.values() if not task.done())

    async def request(self, subject: str) -> list[ContentRecord]:
        """Return the posts of *subject*, sharing any lookup already running.

        Raises:
            IndexUnavailable: When the (shared) lookup failed.  Every waiter
                of that lookup receives the same instance.
        """
        task = self._in_flight.get(subject)
        if task is not None and not task.done():
            logger.info("wayback: request already in progress for @%s, waiting", subject)
            coalesced_requests_total.inc()
        else:
            task = asyncio.ensure_future(self._pipeline(subject))
            self._in_flight[subject] = task
            task.add_done_callback(partial(self._settle, subject))
        return await asyncio.shield(task)

    def _settle(self, subject: str, task: asyncio.Task[list[ContentRecord]]) -> None:
        if self._in_flight.get(subject) is task:
            del self._in_flight[subject]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("wayback: lookup for @%s failed: %s", subject, exc)
