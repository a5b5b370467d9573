"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.  Every
tunable of the archive pipeline is read through this module; never call
``os.getenv`` directly elsewhere in the codebase.

All variables use the ``WAYBACK_TIMELINE_`` prefix, e.g.
``WAYBACK_TIMELINE_FETCH_CONCURRENCY=8``.

Usage::

    from wayback_timeline.config.settings import get_settings

    settings = get_settings()
    limiter = AdmissionLimiter(settings.fetch_concurrency)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide configuration backed by environment variables and an optional .env file.

    Every field has a default, so the service starts without any environment
    at all.  The defaults mirror the limits the Wayback Machine tolerates for
    a single unauthenticated client.
    """

    model_config = SettingsConfigDict(
        env_prefix="WAYBACK_TIMELINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    app_name: str = "Wayback Timeline"
    """Human-readable application name shown in the OpenAPI docs."""

    debug: bool = False
    """Enable FastAPI debug mode.  Never True in production."""

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    host: str = "127.0.0.1"
    """Interface the bundled uvicorn server binds to."""

    port: int = Field(default=5174, ge=1, le=65535)
    """TCP port the bundled uvicorn server listens on."""

    allowed_origins: list[str] = ["*"]
    """Origins permitted by the CORS middleware.

    The browser front-end is served from a different origin than the API,
    so CORS is open by default.  Restrict in production.
    """

    # ------------------------------------------------------------------
    # Archive pipeline
    # ------------------------------------------------------------------

    fetch_concurrency: int = Field(default=5, ge=1)
    """Maximum simultaneous snapshot fetches (AdmissionLimiter capacity)."""

    index_retries: int = Field(default=3, ge=1)
    """Number of passes over the CDX endpoint list before giving up."""

    index_backoff_seconds: float = Field(default=2.0, ge=0.0)
    """Pause between two failed passes over the CDX endpoint list."""

    index_timeout_seconds: float = Field(default=15.0, gt=0.0)
    """Timeout for a single CDX index request."""

    snapshot_timeout_seconds: float = Field(default=7.0, gt=0.0)
    """Timeout for a single archived snapshot request."""

    max_captures: int = Field(default=100, ge=1)
    """Number of captures (taken from the end of the CDX table) to extract."""

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    metrics_enabled: bool = True
    """Expose Prometheus metrics at ``GET /metrics``."""


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    In tests, call ``get_settings.cache_clear()`` after patching environment
    variables.

    Returns:
        Settings: The validated settings object.
    """
    return Settings()
