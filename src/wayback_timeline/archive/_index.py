"""Wayback Machine CDX index lookup.

Internal module used by
:class:`~wayback_timeline.archive.pipeline.FanoutCoordinator`.

Provides:
- :func:`build_index_params` — the ordered CDX endpoint variants for a subject.
- :func:`fetch_index_table` — one CDX request, validated into a result table.
- :func:`project_captures` — column-name projection of a table to captures.
- :class:`SnapshotIndexFetcher` — attempts × endpoint-variants retry loop.
- :func:`parse_wb_timestamp` — CDX timestamp to ISO 8601 (``Z`` suffix).

The two retry dimensions are kept apart: :func:`fetch_index_table` knows
nothing about retries and :class:`SnapshotIndexFetcher` knows nothing about
response formats.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

import httpx

from wayback_timeline.archive._records import CaptureRecord
from wayback_timeline.archive.config import (
    WB_CDX_BASE_URL,
    WB_DEFAULT_OUTPUT,
    WB_DEFAULT_STATUS_FILTER,
    WB_ENDPOINT_LIMITS,
    WB_INDEX_USER_AGENT,
    WB_POST_URL_MARKER,
    WB_STATUS_URL_PATTERN,
    WB_TIMESTAMP_COLUMN,
    WB_URL_COLUMN,
)
from wayback_timeline.core.exceptions import IndexFailureReason, IndexUnavailable

logger = logging.getLogger(__name__)


def build_index_params(subject: str) -> list[dict[str, Any]]:
    """Return the CDX query parameters for every endpoint variant, in order.

    Args:
        subject: Normalized account handle (no leading ``@``).

    Returns:
        One params dict per entry of
        :data:`~wayback_timeline.archive.config.WB_ENDPOINT_LIMITS`.
    """
    variants: list[dict[str, Any]] = []
    for limit in WB_ENDPOINT_LIMITS:
        params: dict[str, Any] = {
            "url": WB_STATUS_URL_PATTERN.format(subject=subject),
            "output": WB_DEFAULT_OUTPUT,
            "filter": WB_DEFAULT_STATUS_FILTER,
        }
        if limit is not None:
            params["limit"] = limit
        variants.append(params)
    return variants


async def fetch_index_table(
    client: httpx.AsyncClient,
    params: dict[str, Any],
    *,
    timeout: float,
    subject: str | None = None,
) -> list[list[str]]:
    """Fetch one CDX result table.

    The CDX API returns a 2D JSON array.  The first row holds the column
    names; subsequent rows are capture records.  A table is only accepted
    when its header names both the URL and timestamp columns and at least
    one data row follows.

    Args:
        client: Shared async HTTP client.
        params: One endpoint variant from :func:`build_index_params`.
        timeout: Request timeout in seconds.
        subject: Account handle, attached to raised errors.

    Returns:
        The full table, header row included.

    Raises:
        IndexUnavailable: With ``reason`` set to ``TIMEOUT`` on a timeout,
            ``UNREACHABLE`` on transport errors and HTTP 429 / 5xx, and
            ``MALFORMED`` for anything else that is not a usable table.
    """
    try:
        response = await client.get(
            WB_CDX_BASE_URL,
            params=params,
            timeout=timeout,
            headers={"User-Agent": WB_INDEX_USER_AGENT},
        )
    except httpx.TimeoutException as exc:
        raise IndexUnavailable(
            f"wayback: CDX request timed out: {exc}",
            reason=IndexFailureReason.TIMEOUT,
            subject=subject,
        ) from exc
    except httpx.RequestError as exc:
        raise IndexUnavailable(
            f"wayback: CDX request error: {exc}",
            reason=IndexFailureReason.UNREACHABLE,
            subject=subject,
        ) from exc

    if response.status_code == 429 or response.status_code >= 500:
        raise IndexUnavailable(
            f"wayback: CDX API returned HTTP {response.status_code}",
            reason=IndexFailureReason.UNREACHABLE,
            subject=subject,
        )

    if response.status_code >= 400:
        raise IndexUnavailable(
            f"wayback: CDX API returned HTTP {response.status_code}",
            reason=IndexFailureReason.MALFORMED,
            subject=subject,
        )

    if not response.text.strip():
        raise IndexUnavailable(
            "wayback: CDX API returned an empty body",
            reason=IndexFailureReason.MALFORMED,
            subject=subject,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise IndexUnavailable(
            f"wayback: CDX JSON parse error: {exc}",
            reason=IndexFailureReason.MALFORMED,
            subject=subject,
        ) from exc

    if not isinstance(data, list) or len(data) < 2 or not isinstance(data[0], list):
        raise IndexUnavailable(
            "wayback: CDX API returned no capture rows",
            reason=IndexFailureReason.MALFORMED,
            subject=subject,
        )

    header = data[0]
    if WB_URL_COLUMN not in header or WB_TIMESTAMP_COLUMN not in header:
        raise IndexUnavailable(
            f"wayback: CDX header lacks '{WB_URL_COLUMN}'/'{WB_TIMESTAMP_COLUMN}': {header}",
            reason=IndexFailureReason.MALFORMED,
            subject=subject,
        )

    return data


def project_captures(table: list[list[str]], max_captures: int) -> list[CaptureRecord]:
    """Project a CDX table onto :class:`CaptureRecord` values.

    Columns are resolved by name because the column order differs between
    endpoint variants.  Rows that are too short, or whose URL does not point
    at an individual post, are dropped.

    Only the last ``max_captures`` rows *by table order* are kept.  The CDX
    table is normally oldest-first, so these are the most recent captures;
    the rows are not re-sorted chronologically.

    Args:
        table: Validated table from :func:`fetch_index_table`.
        max_captures: Recency window size.

    Returns:
        Capture records in table order.
    """
    header = table[0]
    url_idx = header.index(WB_URL_COLUMN)
    ts_idx = header.index(WB_TIMESTAMP_COLUMN)
    width = max(url_idx, ts_idx) + 1

    captures: list[CaptureRecord] = []
    for row in table[1:]:
        if not isinstance(row, list) or len(row) < width:
            continue
        url = row[url_idx]
        timestamp = row[ts_idx]
        if not url or WB_POST_URL_MARKER not in url:
            continue
        captures.append(CaptureRecord(source_url=url, capture_timestamp=timestamp))

    return captures[-max_captures:]


class SnapshotIndexFetcher:
    """Looks up an account's post captures in the CDX index.

    Runs ``retries`` passes over the endpoint variants from
    :func:`build_index_params`.  The first variant that yields a usable table
    wins.  When a whole pass fails the fetcher sleeps ``backoff_seconds``
    before the next one.

    Args:
        client: Shared async HTTP client.
        retries: Number of passes over the endpoint list.
        backoff_seconds: Pause between two failed passes.
        timeout: Per-request timeout in seconds.
        max_captures: Recency window passed to :func:`project_captures`.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        retries: int = 3,
        backoff_seconds: float = 2.0,
        timeout: float = 15.0,
        max_captures: int = 100,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self._client = client
        self._retries = retries
        self._backoff_seconds = backoff_seconds
        self._timeout = timeout
        self._max_captures = max_captures

    async def fetch(self, subject: str) -> list[CaptureRecord]:
        """Return the most recent post captures for *subject*.

        Args:
            subject: Normalized account handle.

        Returns:
            Capture records in CDX table order.  May be empty when the table
            lists no individual posts.

        Raises:
            IndexUnavailable: When every attempt on every endpoint failed.
                The reason is that of the last failure.
        """
        endpoints = build_index_params(subject)
        last_error: IndexUnavailable | None = None

        for attempt in range(1, self._retries + 1):
            for params in endpoints:
                logger.info(
                    "wayback: attempt %d/%d, querying CDX for @%s (limit=%s)",
                    attempt,
                    self._retries,
                    subject,
                    params.get("limit", "none"),
                )
                try:
                    table = await fetch_index_table(
                        self._client, params, timeout=self._timeout, subject=subject
                    )
                except IndexUnavailable as exc:
                    logger.warning(
                        "wayback: CDX attempt %d/%d failed (%s): %s",
                        attempt,
                        self._retries,
                        exc.reason.value,
                        exc,
                    )
                    last_error = exc
                    continue

                captures = project_captures(table, self._max_captures)
                logger.info(
                    "wayback: CDX returned %d rows, %d post captures kept for @%s",
                    len(table) - 1,
                    len(captures),
                    subject,
                )
                return captures

            if attempt < self._retries:
                await asyncio.sleep(self._backoff_seconds)

        if last_error is None:
            raise IndexUnavailable(
                f"wayback: no CDX endpoints configured for @{subject}",
                subject=subject,
            )
        raise IndexUnavailable(
            f"wayback: all CDX attempts failed for @{subject}: {last_error}",
            reason=last_error.reason,
            subject=subject,
        ) from last_error


def parse_wb_timestamp(timestamp: str | None) -> str | None:
    """Convert a CDX timestamp to an ISO 8601 UTC string.

    ``"20210615143022"`` becomes ``"2021-06-15T14:30:22Z"``.

    Args:
        timestamp: Raw 14-digit CDX ``timestamp`` value.

    Returns:
        ISO 8601 string with a ``Z`` suffix, or ``None`` when the value is
        not a valid 14-digit timestamp.
    """
    if not timestamp or len(timestamp) != 14 or not timestamp.isdigit():
        return None
    try:
        dt = datetime.strptime(timestamp, "%Y%m%d%H%M%S")
    except ValueError:
        logger.debug("wayback: could not parse timestamp '%s'", timestamp)
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
