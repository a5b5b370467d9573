"""Shared pytest fixtures for Wayback Timeline tests.

Fixture summary
---------------
settings        — Settings with zero backoff and small timeouts.
cdx_table       — A CDX result table with post and non-post captures.
post_html       — Modern-layout snapshot markup with text and timestamp.
http_client     — Plain httpx.AsyncClient (network is mocked with respx).
api_client      — httpx.AsyncClient talking to create_app() over ASGITransport.

All tests mock the Wayback Machine with respx; no network access is needed.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

# Keep a developer's .env or shell from leaking into Settings().
for _key in list(os.environ):
    if _key.startswith("WAYBACK_TIMELINE_"):
        del os.environ[_key]

from wayback_timeline.config.settings import Settings, get_settings  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Return settings tuned for fast tests (no backoff between CDX passes)."""
    return Settings(
        index_backoff_seconds=0.0,
        index_timeout_seconds=1.0,
        snapshot_timeout_seconds=1.0,
        metrics_enabled=True,
    )


@pytest.fixture
def cdx_table() -> list[list[str]]:
    """A CDX table in the full-field layout, oldest capture first."""
    return [
        ["urlkey", "timestamp", "original", "mimetype", "statuscode", "digest", "length"],
        ["com,twitter)/jack/status/20", "20060321205000",
         "https://twitter.com/jack/status/20", "text/html", "200", "AAA", "1000"],
        ["com,twitter)/jack", "20070101000000",
         "https://twitter.com/jack", "text/html", "200", "BBB", "1000"],
        ["com,twitter)/jack/status/1000", "20210615143022",
         "https://twitter.com/jack/status/1000", "text/html", "200", "CCC", "1000"],
    ]


@pytest.fixture
def post_html() -> str:
    """Modern-layout snapshot markup."""
    return """
    <html><head>
      <meta property="og:description" content="just setting up my twttr">
      <meta property="article:published_time" content="2006-03-21T20:50:14Z">
    </head><body>
      <div data-testid="tweetText">just setting up my twttr</div>
    </body></html>
    """


@pytest_asyncio.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest_asyncio.fixture
async def api_client(
    settings: Settings, http_client: httpx.AsyncClient
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Yield a client bound to a fresh app instance.

    Archive traffic goes through ``http_client`` so respx can intercept it;
    the ASGI transport itself is never mocked.
    """
    from wayback_timeline.api.main import create_app  # noqa: PLC0415

    app = create_app(settings=settings, http_client=http_client)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
