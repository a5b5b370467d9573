"""Command-line entry point.

Run the API server::

    python -m wayback_timeline serve [--host HOST] [--port PORT]

Look up one account and print its archived posts as JSON::

    python -m wayback_timeline fetch @username

Exit codes:
    0 — Success (``fetch`` may print an empty list).
    1 — The CDX index could not be queried.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import httpx

from wayback_timeline.archive._records import normalize_subject
from wayback_timeline.archive.limiter import AdmissionLimiter
from wayback_timeline.archive.pipeline import build_coordinator
from wayback_timeline.config.settings import get_settings
from wayback_timeline.core.exceptions import IndexUnavailable
from wayback_timeline.core.logging_config import configure_logging


async def _fetch(username: str) -> int:
    """Run one pipeline for *username* and print the result.

    Returns:
        Process exit code.
    """
    settings = get_settings()
    subject = normalize_subject(username)
    if not subject:
        print("[wayback-timeline] ERROR: username must not be empty.", file=sys.stderr)
        return 1

    async with httpx.AsyncClient() as client:
        limiter = AdmissionLimiter(settings.fetch_concurrency)
        coordinator = build_coordinator(client, limiter, settings)
        try:
            records = await coordinator.run(subject)
        except IndexUnavailable as exc:
            print(
                f"[wayback-timeline] ERROR ({exc.reason.value}): {exc}",
                file=sys.stderr,
            )
            return 1

    print(json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False))
    if not records:
        print(f"[wayback-timeline] No archived posts found for @{subject}.", file=sys.stderr)
    return 0


def _serve(host: str | None, port: int | None) -> int:
    import uvicorn  # noqa: PLC0415

    settings = get_settings()
    uvicorn.run(
        "wayback_timeline.api.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wayback-timeline",
        description="Reconstruct an account's posts from Wayback Machine snapshots.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (default from settings).")
    serve.add_argument("--port", type=int, default=None, help="Port (default from settings).")

    fetch = sub.add_parser("fetch", help="Look up one account and print JSON.")
    fetch.add_argument("username", help="Account handle, with or without a leading '@'.")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "serve":
        configure_logging(get_settings().log_level)
        return _serve(args.host, args.port)
    configure_logging(get_settings().log_level, stream=sys.stderr)
    return asyncio.run(_fetch(args.username))


if __name__ == "__main__":
    sys.exit(main())
