"""Record types passed between the archive pipeline stages.

This module is private to the ``archive`` package.  Both types are frozen so
that a result list shared between coalesced callers cannot be mutated by one
of them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CaptureRecord:
    """One capture of an archived post, as listed by the CDX index.

    Attributes:
        source_url: The original (live-web) URL that was captured.
        capture_timestamp: 14-digit ``YYYYMMDDHHMMSS`` capture time (UTC).
    """

    source_url: str
    capture_timestamp: str


@dataclass(frozen=True)
class ContentRecord:
    """A reconstructed post.

    Attributes:
        text: Post text.  Never empty.
        timestamp: ISO 8601 publication (or capture) time.  Never empty.
    """

    text: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_subject(raw: str) -> str:
    """Derive a subject from an inbound query: trim and drop one leading ``@``."""
    subject = raw.strip()
    if subject.startswith("@"):
        subject = subject[1:]
    return subject.strip()
