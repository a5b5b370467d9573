"""FastAPI router exposing archived-post lookups.

Mount in the app::

    from wayback_timeline.archive.router import router as archive_router
    app.include_router(archive_router)

Endpoints:

- ``GET /api/tweets/{username}`` — archived posts of one account,
  newest first.

Failures are returned as ``{"error": message}`` with a status derived from
the index failure reason: 408 for timeouts, 503 when the archive is
unreachable, 500 otherwise.  An empty list is a successful response meaning
no archived post could be recovered.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wayback_timeline.api.dependencies import get_coalescer
from wayback_timeline.archive._records import normalize_subject
from wayback_timeline.archive.coalescer import RequestCoalescer
from wayback_timeline.core.exceptions import IndexFailureReason, IndexUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Archived posts"])

TIMEOUT_MESSAGE: str = (
    "Request timeout - Wayback Machine is taking too long to respond. Please try again."
)
UNAVAILABLE_MESSAGE: str = (
    "Wayback Machine is currently unavailable. Please try again later."
)
GENERIC_MESSAGE: str = "Failed to fetch tweets"


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PostResponse(BaseModel):
    """One reconstructed post.

    Attributes:
        text: Post text.
        timestamp: ISO 8601 publication time (capture time when the snapshot
            carried no publication time).
    """

    text: str = Field(..., min_length=1)
    timestamp: str = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def error_status_and_message(exc: Exception) -> tuple[int, str]:
    """Map a lookup failure to an HTTP status and user-facing message."""
    if isinstance(exc, IndexUnavailable):
        if exc.reason is IndexFailureReason.TIMEOUT:
            return status.HTTP_408_REQUEST_TIMEOUT, TIMEOUT_MESSAGE
        if exc.reason is IndexFailureReason.UNREACHABLE:
            return status.HTTP_503_SERVICE_UNAVAILABLE, UNAVAILABLE_MESSAGE
    return status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_MESSAGE


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/tweets/{username}",
    response_model=list[PostResponse],
    responses={
        408: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def get_archived_posts(
    username: str,
    coalescer: Annotated[RequestCoalescer, Depends(get_coalescer)],
) -> list[PostResponse] | JSONResponse:
    """Return the archived posts of *username*, newest first.

    A leading ``@`` is ignored.  Concurrent requests for the same account
    share a single lookup.

    Raises:
        HTTPException 422: If the username is empty after normalization.
    """
    subject = normalize_subject(username)
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="username must not be empty",
        )

    try:
        records = await coalescer.request(subject)
    except Exception as exc:  # noqa: BLE001
        status_code, message = error_status_and_message(exc)
        if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.exception("wayback: lookup for @%s failed", subject)
        else:
            logger.warning("wayback: lookup for @%s failed: %s", subject, exc)
        return JSONResponse(status_code=status_code, content={"error": message})

    return [PostResponse(text=r.text, timestamp=r.timestamp) for r in records]
