"""Configuration for the Wayback Machine archive pipeline.

Defines CDX API endpoints, default query parameters, request headers and the
URL filters used by
:class:`~wayback_timeline.archive._index.SnapshotIndexFetcher` and
:class:`~wayback_timeline.archive._extractor.ContentExtractor`.

Tunables that operators may want to change (timeouts, retry counts,
concurrency) live in :mod:`wayback_timeline.config.settings`; the values
here describe the upstream API itself.

Reference: https://github.com/internetarchive/wayback/tree/master/wayback-cdx-server
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# API constants
# ---------------------------------------------------------------------------

WB_CDX_BASE_URL: str = "https://web.archive.org/cdx/search/cdx"
"""Base URL for the Wayback Machine CDX API."""

WB_PLAYBACK_URL_TEMPLATE: str = "https://web.archive.org/web/{timestamp}id_/{url}"
"""URL pattern for retrieving raw archived page content.

The ``id_`` suffix requests the original payload without the Wayback Machine
toolbar or link rewriting.
"""

WB_STATUS_URL_PATTERN: str = "twitter.com/{subject}/status/*"
"""CDX ``url`` pattern matching every archived post of one account."""

WB_DEFAULT_OUTPUT: str = "json"
"""CDX output format: a 2D array whose first row holds the column names."""

WB_DEFAULT_STATUS_FILTER: str = "statuscode:200"
"""Only return captures where the archived HTTP status was 200."""

WB_ENDPOINT_LIMITS: tuple[int | None, ...] = (None, 1000, 500)
"""Result-size limits of the CDX endpoint variants, tried in order.

The unbounded query returns the most captures but is the one most likely to
time out on large accounts; the bounded variants are progressively cheaper.
"""

# ---------------------------------------------------------------------------
# Result table
# ---------------------------------------------------------------------------

WB_URL_COLUMN: str = "original"
"""CDX column holding the archived resource URL."""

WB_TIMESTAMP_COLUMN: str = "timestamp"
"""CDX column holding the 14-digit capture timestamp."""

WB_POST_URL_MARKER: str = "/status/"
"""Substring identifying a URL that references an individual post."""

# ---------------------------------------------------------------------------
# Request headers
# ---------------------------------------------------------------------------

WB_INDEX_USER_AGENT: str = "Mozilla/5.0 (compatible; WaybackBot/1.0)"
"""User-Agent sent with CDX index queries."""

WB_SNAPSHOT_USER_AGENT: str = "Mozilla/5.0"
"""Browser-like User-Agent sent with snapshot requests.

The playback host rejects some clients that do not identify as a browser.
"""
