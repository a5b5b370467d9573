"""Tests for snapshot retrieval and post extraction.

Covers:
- build_snapshot_url(): raw-payload (id_) playback URL
- extract_from_payload(): modern markup with text and timestamp
- extract_from_payload(): og:description only → capture timestamp fallback
- extract_from_payload(): JSON payloads, incomplete JSON falls back to markup
- extract_from_payload(): legacy layout timestamps normalized to ISO 8601
- extract_from_payload(): no text → None
- ContentExtractor.extract(): success path sends the snapshot User-Agent
- ContentExtractor.extract(): 404, 5xx, timeout, connection error → None
- ContentExtractor.extract(): unparseable JSON body → None, never raises
- ContentExtractor.extract(): follows archive redirects
- ContentExtractor.extract(): URLs httpx cannot build a request for → None
- snapshot_extractions_total counts extracted and skipped captures

These tests run without a network connection.
"""

from __future__ import annotations

import json
import re

import httpx
import pytest
import respx
from prometheus_client import REGISTRY

from wayback_timeline.archive._extractor import (
    ContentExtractor,
    build_snapshot_url,
    extract_from_payload,
)
from wayback_timeline.archive._records import CaptureRecord, ContentRecord
from wayback_timeline.archive.config import WB_SNAPSHOT_USER_AGENT

CAPTURE = CaptureRecord(
    source_url="https://twitter.com/jack/status/20",
    capture_timestamp="20060321205000",
)
SNAPSHOT_URL = "https://web.archive.org/web/20060321205000id_/https://twitter.com/jack/status/20"
SNAPSHOT_PATTERN = re.escape(SNAPSHOT_URL)


def _extractions(outcome: str) -> float:
    return REGISTRY.get_sample_value("snapshot_extractions_total", {"outcome": outcome}) or 0.0


class TestBuildSnapshotUrl:
    def test_raw_payload_url(self) -> None:
        assert build_snapshot_url(CAPTURE) == SNAPSHOT_URL


# ---------------------------------------------------------------------------
# extract_from_payload()
# ---------------------------------------------------------------------------


class TestExtractFromPayload:
    def test_modern_markup(self, post_html: str) -> None:
        record = extract_from_payload(post_html, "text/html; charset=utf-8", CAPTURE.capture_timestamp)

        assert record == ContentRecord(
            text="just setting up my twttr", timestamp="2006-03-21T20:50:14Z"
        )

    def test_og_description_only_uses_capture_timestamp(self) -> None:
        markup = '<meta property="og:description" content="archived words">'

        record = extract_from_payload(markup, "text/html", "20210615143022")

        assert record == ContentRecord(text="archived words", timestamp="2021-06-15T14:30:22Z")

    def test_no_timestamp_anywhere_returns_none(self) -> None:
        markup = '<meta property="og:description" content="archived words">'
        assert extract_from_payload(markup, "text/html", "not-a-timestamp") is None

    def test_json_payload(self) -> None:
        body = json.dumps(
            {"data": {"text": "from the API", "created_at": "2021-06-15T14:30:22.000Z"}}
        )

        record = extract_from_payload(body, "application/json; charset=utf-8", "20210701000000")

        assert record == ContentRecord(text="from the API", timestamp="2021-06-15T14:30:22.000Z")

    def test_json_v1_created_at_normalized(self) -> None:
        body = json.dumps({"data": {"text": "v1", "created_at": "Wed Oct 10 20:19:24 +0000 2018"}})

        record = extract_from_payload(body, "application/json", None)

        assert record is not None
        assert record.timestamp == "2018-10-10T20:19:24Z"

    def test_incomplete_json_without_markup_returns_none(self) -> None:
        body = json.dumps({"data": {"text": "no date"}})
        assert extract_from_payload(body, "application/json", "20210101000000") is None

    def test_legacy_layout(self) -> None:
        markup = (
            '<div class="permalink-tweet">'
            '<a class="tweet-timestamp" title="10:32 AM - 15 Jun 2014">15 Jun</a>'
            '<p class="js-tweet-text tweet-text">legacy post</p>'
            "</div>"
        )

        record = extract_from_payload(markup, "text/html", "20140620000000")

        assert record == ContentRecord(text="legacy post", timestamp="2014-06-15T10:32:00Z")

    def test_no_text_returns_none(self) -> None:
        markup = '<meta property="article:published_time" content="2021-06-15T14:30:22Z">'
        assert extract_from_payload(markup, "text/html", "20210615143022") is None

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ValueError):
            extract_from_payload("{not json", "application/json", "20210615143022")


# ---------------------------------------------------------------------------
# ContentExtractor
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestContentExtractor:
    async def test_extracts_post(self, http_client: httpx.AsyncClient, post_html: str) -> None:
        before = _extractions("extracted")
        with respx.mock:
            route = respx.get(url__regex=SNAPSHOT_PATTERN).mock(
                return_value=httpx.Response(
                    200, text=post_html, headers={"content-type": "text/html"}
                )
            )
            record = await ContentExtractor(http_client, timeout=1.0).extract(CAPTURE)

        assert record == ContentRecord(
            text="just setting up my twttr", timestamp="2006-03-21T20:50:14Z"
        )
        assert route.calls.last.request.headers["User-Agent"] == WB_SNAPSHOT_USER_AGENT
        assert _extractions("extracted") == before + 1

    async def test_follows_redirects(self, http_client: httpx.AsyncClient, post_html: str) -> None:
        redirected = "https://web.archive.org/web/20060321205014id_/https://twitter.com/jack/status/20"
        with respx.mock:
            respx.get(url__regex=SNAPSHOT_PATTERN).mock(
                return_value=httpx.Response(302, headers={"location": redirected})
            )
            respx.get(url__regex=re.escape(redirected)).mock(
                return_value=httpx.Response(
                    200, text=post_html, headers={"content-type": "text/html"}
                )
            )
            record = await ContentExtractor(http_client, timeout=1.0).extract(CAPTURE)

        assert record is not None
        assert record.text == "just setting up my twttr"

    @pytest.mark.parametrize(
        "mock_kwargs",
        [
            {"return_value": httpx.Response(404)},
            {"return_value": httpx.Response(503)},
            {"side_effect": httpx.ReadTimeout("slow")},
            {"side_effect": httpx.ConnectError("refused")},
            {
                "return_value": httpx.Response(
                    200, text="{not json", headers={"content-type": "application/json"}
                )
            },
            {
                "return_value": httpx.Response(
                    200, text="<html>Log in</html>", headers={"content-type": "text/html"}
                )
            },
        ],
    )
    async def test_unrecoverable_capture_returns_none(
        self, http_client: httpx.AsyncClient, mock_kwargs: dict
    ) -> None:
        before = _extractions("skipped")
        with respx.mock:
            respx.get(url__regex=SNAPSHOT_PATTERN).mock(**mock_kwargs)
            record = await ContentExtractor(http_client, timeout=1.0).extract(CAPTURE)

        assert record is None
        assert _extractions("skipped") == before + 1

    @pytest.mark.parametrize(
        "source_url",
        [
            "https://twitter.com/jack/status/21\x00",
            "https://twitter.com/jack/status/" + "9" * 70_000,
        ],
    )
    async def test_unbuildable_snapshot_url_returns_none(
        self, http_client: httpx.AsyncClient, source_url: str
    ) -> None:
        capture = CaptureRecord(source_url=source_url, capture_timestamp="20060321205100")
        before = _extractions("skipped")
        with respx.mock:
            record = await ContentExtractor(http_client, timeout=1.0).extract(capture)

        assert record is None
        assert _extractions("skipped") == before + 1
