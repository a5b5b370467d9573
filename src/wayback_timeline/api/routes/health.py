"""Health check route handler.

``GET /api/health``
    Process-level liveness plus a snapshot of the archive pipeline's shared
    state: admission limiter occupancy and the number of subjects currently
    being looked up.  Performs no upstream I/O and always returns HTTP 200.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from wayback_timeline.api.dependencies import get_coalescer, get_limiter
from wayback_timeline.archive.coalescer import RequestCoalescer
from wayback_timeline.archive.limiter import AdmissionLimiter

router = APIRouter(tags=["system"])


@router.get("/api/health", include_in_schema=True)
async def system_health(
    request: Request,
    limiter: Annotated[AdmissionLimiter, Depends(get_limiter)],
    coalescer: Annotated[RequestCoalescer, Depends(get_coalescer)],
) -> JSONResponse:
    """Return liveness and pipeline occupancy.

    Returns:
        JSON with ``status``, ``app``, ``checked_at``, ``limiter``
        (``capacity``/``running``/``waiting``) and ``in_flight_lookups``.
    """
    return JSONResponse(
        {
            "status": "ok",
            "app": request.app.title,
            "checked_at": datetime.now(tz=timezone.utc).isoformat(),
            "limiter": {
                "capacity": limiter.capacity,
                "running": limiter.running,
                "waiting": limiter.waiting,
            },
            "in_flight_lookups": coalescer.in_flight_count,
        }
    )
