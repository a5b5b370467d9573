"""Prometheus metrics for Wayback Timeline.

All metrics are module-level singletons registered on the default
``REGISTRY``.  They are safe to import from multiple modules because each
module object is created only once per process.

Metrics defined here:

  pipeline_runs_total{outcome}
      Counter — archive pipeline completions by outcome
      (success, empty, failed).

  coalesced_requests_total
      Counter — lookups that attached to a pipeline already running for the
      same subject instead of starting a new one.

  snapshot_extractions_total{outcome}
      Counter — per-capture extraction outcomes (extracted, skipped).

  http_requests_total{method, path, status}
      Counter — HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram — HTTP request latency in seconds.

Usage::

    from wayback_timeline.api.metrics import pipeline_runs_total
    pipeline_runs_total.labels(outcome="success").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Archive pipeline metrics
# ---------------------------------------------------------------------------

pipeline_runs_total: Counter = Counter(
    "pipeline_runs_total",
    "Archive pipeline completions by outcome.",
    labelnames=["outcome"],
)
"""Counter incremented when a pipeline settles.

Labels:
  outcome: one of success, empty, failed
"""

coalesced_requests_total: Counter = Counter(
    "coalesced_requests_total",
    "Lookups that joined an already running pipeline for the same subject.",
)

snapshot_extractions_total: Counter = Counter(
    "snapshot_extractions_total",
    "Per-capture snapshot extraction outcomes.",
    labelnames=["outcome"],
)
"""Counter incremented once per capture processed.

Labels:
  outcome: extracted (a post was recovered) or skipped
"""

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)
"""Counter incremented after every HTTP response.

Labels:
  method: HTTP method (GET, POST, …)
  path:   route template where available, raw path otherwise
  status: HTTP response status code as string (e.g. '200', '408')
"""

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)
"""Histogram of HTTP request durations.

A cold lookup fans out up to 100 snapshot fetches, so the buckets reach
well past the usual web-request range.
"""


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST
