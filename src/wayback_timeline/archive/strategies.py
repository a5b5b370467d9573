"""Ranked extraction strategies for archived post payloads.

Archived ``/status/`` captures come in several shapes: JSON API responses,
modern markup with ``data-testid`` regions, and the legacy layouts used
before 2019.  Each shape is handled by a small pure function over an already
parsed payload, so every strategy can be unit-tested without a network
response.

Strategies are grouped into ordered tuples and evaluated by
:func:`first_match`; the first one returning a non-empty value wins.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from bs4 import BeautifulSoup

MarkupStrategy = Callable[[BeautifulSoup], str | None]

# ---------------------------------------------------------------------------
# Selector helpers
# ---------------------------------------------------------------------------


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _select_attr(soup: BeautifulSoup, selector: str, attr: str) -> str | None:
    """Return *attr* of the first element matching *selector*, stripped."""
    element = soup.select_one(selector)
    if element is None:
        return None
    return _clean(element.get(attr))


def _select_text(soup: BeautifulSoup, selector: str) -> str | None:
    """Return the text content of the first element matching *selector*."""
    element = soup.select_one(selector)
    if element is None:
        return None
    return _clean(element.get_text())


# ---------------------------------------------------------------------------
# Structured (JSON) payloads
# ---------------------------------------------------------------------------


def json_post_fields(payload: Any) -> tuple[str, str] | None:
    """Return ``(text, created_at)`` from an API-style JSON payload.

    Expects the shape ``{"data": {"text": ..., "created_at": ...}}``.  Both
    fields must be present and non-empty.
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    text = _clean(data.get("text"))
    created_at = _clean(data.get("created_at"))
    if text and created_at:
        return text, created_at
    return None


# ---------------------------------------------------------------------------
# Post text
# ---------------------------------------------------------------------------


def og_description(soup: BeautifulSoup) -> str | None:
    return _select_attr(soup, 'meta[property="og:description"]', "content")


def tweet_text_region(soup: BeautifulSoup) -> str | None:
    return _select_text(soup, 'div[data-testid="tweetText"]')


LEGACY_TEXT_SELECTORS: tuple[str, ...] = (
    ".tweet-text",
    ".js-tweet-text",
    '[data-testid="tweetText"]',
)


def legacy_tweet_text(soup: BeautifulSoup) -> str | None:
    """Try the pre-2019 layout selectors in order."""
    for selector in LEGACY_TEXT_SELECTORS:
        text = _select_text(soup, selector)
        if text:
            return text
    return None


TEXT_STRATEGIES: tuple[MarkupStrategy, ...] = (
    og_description,
    tweet_text_region,
    legacy_tweet_text,
)

# ---------------------------------------------------------------------------
# Post timestamp
# ---------------------------------------------------------------------------


def published_time_meta(soup: BeautifulSoup) -> str | None:
    return _select_attr(soup, 'meta[property="article:published_time"]', "content")


def time_element_datetime(soup: BeautifulSoup) -> str | None:
    return _select_attr(soup, "time", "datetime")


LEGACY_TIMESTAMP_SELECTORS: tuple[str, ...] = (
    ".tweet-timestamp",
    ".js-tweet-timestamp",
)


def legacy_timestamp_title(soup: BeautifulSoup) -> str | None:
    """Legacy layouts keep a human-readable time in the link's ``title``."""
    for selector in LEGACY_TIMESTAMP_SELECTORS:
        value = _select_attr(soup, selector, "title")
        if value:
            return value
    return None


TIMESTAMP_STRATEGIES: tuple[MarkupStrategy, ...] = (
    published_time_meta,
    time_element_datetime,
    legacy_timestamp_title,
)


def first_match(
    strategies: Sequence[MarkupStrategy], soup: BeautifulSoup
) -> str | None:
    """Evaluate *strategies* in order and return the first non-empty result."""
    for strategy in strategies:
        value = strategy(soup)
        if value:
            return value
    return None


# ---------------------------------------------------------------------------
# Timestamp normalization
# ---------------------------------------------------------------------------

_NON_ISO_FORMATS: tuple[str, ...] = (
    "%a %b %d %H:%M:%S %z %Y",  # v1.1 API created_at: "Wed Oct 10 20:19:24 +0000 2018"
    "%I:%M %p - %d %b %Y",  # legacy link title: "10:32 AM - 15 Jun 2021"
    "%H:%M - %d %b %Y",
)


def parse_post_timestamp(value: str | None) -> datetime | None:
    """Parse a post timestamp into an aware UTC :class:`datetime`.

    Accepts ISO 8601 (including a ``Z`` suffix) and the non-ISO formats in
    :data:`_NON_ISO_FORMATS`.  Naive values are taken to be UTC.

    Returns:
        The parsed datetime, or ``None`` if *value* matches no known format.
    """
    if not value:
        return None
    value = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        for fmt in _NON_ISO_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_timestamp(value: str) -> str:
    """Return *value* as ISO 8601 where it is not already.

    ISO input is passed through untouched.  Legacy and API formats are
    rewritten as ``YYYY-MM-DDTHH:MM:SSZ``.  Unrecognised input is returned
    as-is; such records sort after all dated ones.
    """
    try:
        datetime.fromisoformat(value)
        return value
    except ValueError:
        pass
    parsed = parse_post_timestamp(value)
    if parsed is None:
        return value
    return parsed.strftime("%Y-%m-%dT%H:%M:%SZ")
