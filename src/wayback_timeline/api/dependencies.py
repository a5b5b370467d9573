"""FastAPI dependencies shared by route modules.

The archive pipeline objects are created once by
:func:`~wayback_timeline.api.main.create_app` and kept on ``app.state``;
these helpers hand them to route handlers.
"""

from __future__ import annotations

from fastapi import Request

from wayback_timeline.archive.coalescer import RequestCoalescer
from wayback_timeline.archive.limiter import AdmissionLimiter


def get_coalescer(request: Request) -> RequestCoalescer:
    return request.app.state.coalescer


def get_limiter(request: Request) -> AdmissionLimiter:
    return request.app.state.limiter
