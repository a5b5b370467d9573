"""Snapshot retrieval and post extraction.

Internal module used by
:class:`~wayback_timeline.archive.pipeline.FanoutCoordinator`.

:class:`ContentExtractor` fetches the raw payload of one capture through the
Wayback Machine playback URL and hands it to :func:`extract_from_payload`,
which runs the ranked strategies from
:mod:`~wayback_timeline.archive.strategies`.

**Error isolation**: partial archive coverage is expected.  A single fetch
failure (4xx/5xx, timeout, transport error, unbuildable URL) or extraction
error is logged and reported as ``None`` without raising, so the rest of the
batch is not affected.
"""

from __future__ import annotations

import json
import logging

import httpx
from bs4 import BeautifulSoup

from wayback_timeline.api.metrics import snapshot_extractions_total
from wayback_timeline.archive._index import parse_wb_timestamp
from wayback_timeline.archive._records import CaptureRecord, ContentRecord
from wayback_timeline.archive.config import (
    WB_PLAYBACK_URL_TEMPLATE,
    WB_SNAPSHOT_USER_AGENT,
)
from wayback_timeline.archive.strategies import (
    TEXT_STRATEGIES,
    TIMESTAMP_STRATEGIES,
    first_match,
    json_post_fields,
    normalize_timestamp,
)

logger = logging.getLogger(__name__)


def build_snapshot_url(capture: CaptureRecord) -> str:
    """Return the raw-payload playback URL for *capture*."""
    return WB_PLAYBACK_URL_TEMPLATE.format(
        timestamp=capture.capture_timestamp,
        url=capture.source_url,
    )


def extract_from_payload(
    body: str,
    content_type: str,
    capture_timestamp: str | None,
) -> ContentRecord | None:
    """Build a :class:`ContentRecord` from one archived payload.

    Order of attempts:

    1. JSON payloads (``application/json``): ``data.text`` and
       ``data.created_at``, used only when both are present.
    2. Markup: text from :data:`TEXT_STRATEGIES`, timestamp from
       :data:`TIMESTAMP_STRATEGIES`, falling back to the capture's own
       archival timestamp.

    Args:
        body: Decoded response body.
        content_type: Response ``Content-Type`` header (may be empty).
        capture_timestamp: 14-digit CDX timestamp of the capture.

    Returns:
        A record with non-empty text and timestamp, or ``None``.

    Raises:
        Exception: Parser errors propagate; :meth:`ContentExtractor.extract`
            absorbs them.
    """
    if "application/json" in content_type.lower():
        fields = json_post_fields(json.loads(body))
        if fields is not None:
            text, created_at = fields
            return ContentRecord(text=text, timestamp=normalize_timestamp(created_at))

    soup = BeautifulSoup(body, "html.parser")

    text = first_match(TEXT_STRATEGIES, soup)
    if not text:
        return None

    timestamp = first_match(TIMESTAMP_STRATEGIES, soup) or parse_wb_timestamp(
        capture_timestamp
    )
    if not timestamp:
        return None

    return ContentRecord(text=text, timestamp=normalize_timestamp(timestamp))


class ContentExtractor:
    """Fetches one archived capture and extracts the post it shows.

    Args:
        client: Shared async HTTP client.
        timeout: Per-snapshot request timeout in seconds.
    """

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 7.0) -> None:
        self._client = client
        self._timeout = timeout

    async def extract(self, capture: CaptureRecord) -> ContentRecord | None:
        """Return the post shown by *capture*, or ``None`` if it cannot be recovered.

        Never raises for fetch or parse failures.
        """
        snapshot_url = build_snapshot_url(capture)
        record = await self._fetch_and_extract(snapshot_url, capture)
        snapshot_extractions_total.labels(
            outcome="extracted" if record is not None else "skipped"
        ).inc()
        return record

    async def _fetch_and_extract(
        self, snapshot_url: str, capture: CaptureRecord
    ) -> ContentRecord | None:
        try:
            response = await self._client.get(
                snapshot_url,
                timeout=self._timeout,
                follow_redirects=True,
                headers={"User-Agent": WB_SNAPSHOT_USER_AGENT},
            )
        except httpx.TimeoutException:
            logger.warning("wayback: timeout fetching snapshot %s", snapshot_url)
            return None
        except httpx.RequestError as exc:
            logger.warning("wayback: request error for snapshot %s: %s", snapshot_url, exc)
            return None
        except httpx.InvalidURL as exc:
            # CDX rows occasionally carry URLs httpx refuses to build a request for.
            logger.warning("wayback: invalid snapshot URL %r: %s", snapshot_url, exc)
            return None

        if response.status_code >= 400:
            logger.info(
                "wayback: HTTP %d for snapshot %s", response.status_code, snapshot_url
            )
            return None

        try:
            record = extract_from_payload(
                response.text,
                response.headers.get("content-type", ""),
                capture.capture_timestamp,
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("wayback: extraction error for %s: %s", snapshot_url, exc)
            return None

        if record is None:
            logger.debug("wayback: no post found in snapshot %s", snapshot_url)
        return record
