"""FastAPI application factory and entry point.

Creates the application instance, registers middleware, mounts the route
routers and owns the lifetime of the shared pipeline objects (HTTP client,
admission limiter, request coalescer).

Usage::

    # Development server (from project root)
    uvicorn wayback_timeline.api.main:app --reload

    # Or through the bundled CLI
    python -m wayback_timeline serve --port 5174
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

import httpx
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from wayback_timeline.api.metrics import (
    get_metrics_response,
    http_request_duration_seconds,
    http_requests_total,
)
from wayback_timeline.archive.coalescer import RequestCoalescer
from wayback_timeline.archive.limiter import AdmissionLimiter
from wayback_timeline.archive.pipeline import build_coordinator
from wayback_timeline.config.settings import Settings, get_settings
from wayback_timeline.core.logging_config import configure_logging, request_id_var

logger = structlog.get_logger(__name__)


UNMATCHED_ROUTE_LABEL = "unmatched"


def _route_path(request: Request) -> str:
    """Return the route template (``/api/tweets/{username}``) for metric labels.

    Requests that matched no route are all labelled ``unmatched``.
    """
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE_LABEL)


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        settings: Settings to use instead of :func:`get_settings`.
        http_client: Client to use for all archive requests.  When omitted
            the app creates its own and closes it on shutdown; an injected
            client is left open for its owner.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient()
    limiter = AdmissionLimiter(settings.fetch_concurrency)
    coordinator = build_coordinator(client, limiter, settings)

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "application_startup",
            app_name=settings.app_name,
            fetch_concurrency=settings.fetch_concurrency,
            log_level=settings.log_level,
        )
        yield
        if owns_client:
            await client.aclose()
        logger.info("application_shutdown")

    application = FastAPI(
        title=settings.app_name,
        description=(
            "Reconstructs an account's posts from Internet Archive "
            "Wayback Machine snapshots."
        ),
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.state.settings = settings
    application.state.http_client = client
    application.state.limiter = limiter
    application.state.coalescer = RequestCoalescer(coordinator.run)

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status and duration, and record metrics.

        Attaches a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request can be correlated.
        """
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            status_code = getattr(response, "status_code", 500)
            path = _route_path(request)
            http_requests_total.labels(
                method=request.method, path=path, status=str(status_code)
            ).inc()
            http_request_duration_seconds.labels(
                method=request.method, path=path
            ).observe(elapsed)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Routers -----------------------------------------------------------

    from wayback_timeline.api.routes import health as health_routes  # noqa: PLC0415
    from wayback_timeline.archive.router import router as archive_router  # noqa: PLC0415

    application.include_router(health_routes.router)
    application.include_router(archive_router)

    if settings.metrics_enabled:

        @application.get("/metrics", tags=["system"], include_in_schema=False)
        async def metrics() -> Response:
            """Expose Prometheus metrics in text format."""
            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn.
"""
