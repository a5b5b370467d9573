"""Wayback Machine archive pipeline.

Reconstructs an account's posts from archived ``/status/`` pages.  A lookup
flows through four stages:

1. :class:`~wayback_timeline.archive._index.SnapshotIndexFetcher` queries the
   CDX index for captures of ``twitter.com/<subject>/status/*``.
2. :class:`~wayback_timeline.archive._extractor.ContentExtractor` fetches each
   capture's raw payload and mines text and timestamp from it.
3. :class:`~wayback_timeline.archive.pipeline.FanoutCoordinator` runs the
   extractions through an :class:`~wayback_timeline.archive.limiter.AdmissionLimiter`
   and sorts the survivors newest-first.
4. :class:`~wayback_timeline.archive.coalescer.RequestCoalescer` makes
   concurrent lookups for the same subject share one pipeline run.

The Internet Archive's infrastructure can be fragile.  Coverage is
best-effort: snapshots that cannot be fetched or parsed are skipped.
"""
