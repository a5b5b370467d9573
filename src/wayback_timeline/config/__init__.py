"""Configuration package for Wayback Timeline.

Re-exports the settings symbols so callers can write::

    from wayback_timeline.config import get_settings
"""

from __future__ import annotations

from wayback_timeline.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
