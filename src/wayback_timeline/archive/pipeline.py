"""Fan-out of snapshot extraction for one subject.

:class:`FanoutCoordinator` runs the whole lookup for one account: a single
CDX index query, then one extraction per capture through the shared
:class:`~wayback_timeline.archive.limiter.AdmissionLimiter`, then a
newest-first sort of whatever could be recovered.

Completion order of the extractions is irrelevant; the final order is
imposed by :func:`sort_newest_first`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from functools import partial
from typing import Iterable

import httpx

from wayback_timeline.api.metrics import pipeline_runs_total
from wayback_timeline.archive._extractor import ContentExtractor
from wayback_timeline.archive._index import SnapshotIndexFetcher
from wayback_timeline.archive._records import ContentRecord
from wayback_timeline.archive.limiter import AdmissionLimiter
from wayback_timeline.archive.strategies import parse_post_timestamp
from wayback_timeline.config.settings import Settings

logger = logging.getLogger(__name__)


def sort_newest_first(records: Iterable[ContentRecord]) -> list[ContentRecord]:
    """Sort records by parsed timestamp, newest first.

    The sort is stable: records with equal timestamps keep their capture
    order.  Records whose timestamp cannot be parsed are placed after all
    dated records, in capture order.
    """
    dated: list[tuple[ContentRecord, datetime]] = []
    undated: list[ContentRecord] = []
    for record in records:
        parsed = parse_post_timestamp(record.timestamp)
        if parsed is None:
            undated.append(record)
        else:
            dated.append((record, parsed))

    dated.sort(key=lambda pair: pair[1], reverse=True)
    return [record for record, _ in dated] + undated


class FanoutCoordinator:
    """Runs index lookup, bounded extraction fan-out and sorting for a subject.

    Args:
        index_fetcher: CDX index lookup.
        extractor: Per-capture snapshot extractor.
        limiter: Admission limiter shared by every pipeline in the process.
    """

    def __init__(
        self,
        index_fetcher: SnapshotIndexFetcher,
        extractor: ContentExtractor,
        limiter: AdmissionLimiter,
    ) -> None:
        self._index_fetcher = index_fetcher
        self._extractor = extractor
        self._limiter = limiter

    async def run(self, subject: str) -> list[ContentRecord]:
        """Return the recoverable posts of *subject*, newest first.

        An empty list is a successful outcome meaning no archived post could
        be extracted.

        Raises:
            IndexUnavailable: Propagated from the index lookup.
        """
        try:
            captures = await self._index_fetcher.fetch(subject)
        except Exception:
            pipeline_runs_total.labels(outcome="failed").inc()
            raise

        logger.info(
            "wayback: processing %d snapshots for @%s with concurrency %d",
            len(captures),
            subject,
            self._limiter.capacity,
        )

        results = await asyncio.gather(
            *(
                self._limiter.run(partial(self._extractor.extract, capture))
                for capture in captures
            )
        )
        records = sort_newest_first(r for r in results if r is not None)

        pipeline_runs_total.labels(outcome="success" if records else "empty").inc()
        logger.info(
            "wayback: extracted %d / %d posts for @%s",
            len(records),
            len(captures),
            subject,
        )
        return records


def build_coordinator(
    client: httpx.AsyncClient,
    limiter: AdmissionLimiter,
    settings: Settings,
) -> FanoutCoordinator:
    """Wire a :class:`FanoutCoordinator` from application settings."""
    index_fetcher = SnapshotIndexFetcher(
        client,
        retries=settings.index_retries,
        backoff_seconds=settings.index_backoff_seconds,
        timeout=settings.index_timeout_seconds,
        max_captures=settings.max_captures,
    )
    extractor = ContentExtractor(client, timeout=settings.snapshot_timeout_seconds)
    return FanoutCoordinator(index_fetcher, extractor, limiter)
