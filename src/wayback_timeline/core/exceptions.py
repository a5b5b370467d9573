"""Application-wide exception hierarchy for Wayback Timeline.

All custom exceptions subclass ``WaybackTimelineError``, enabling consistent
error handling and structured logging across the application.

Hierarchy::

    WaybackTimelineError
    └── IndexUnavailable      (reason: IndexFailureReason)

Per-snapshot extraction failures have no exception type here:
they are absorbed by the extractor and reported as a missing record, never
raised.
"""

from __future__ import annotations

from enum import Enum


class WaybackTimelineError(Exception):
    """Base class for all Wayback Timeline exceptions."""


class IndexFailureReason(str, Enum):
    """Why the CDX index lookup could not produce a capture list.

    Attributes:
        TIMEOUT: The final request timed out.
        UNREACHABLE: The archive host could not be reached or answered with
            a server-side / throttling status (429, 5xx).
        MALFORMED: The archive answered, but not with a usable capture table.
    """

    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed"


class IndexUnavailable(WaybackTimelineError):
    """Raised when every CDX endpoint attempt for a subject has failed.

    Waiters that joined a coalesced pipeline receive the very same instance,
    so callers can compare failures by identity.

    Args:
        message: Human-readable description of the last failure.
        reason: Classification of the last failure.
        subject: The account identifier that was being looked up.
    """

    def __init__(
        self,
        message: str,
        reason: IndexFailureReason = IndexFailureReason.MALFORMED,
        subject: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.subject = subject
