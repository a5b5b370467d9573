"""Wayback Timeline.

Reconstructs a social-media account's posts from Internet Archive Wayback
Machine snapshots and serves them newest-first over a small HTTP API.

Sub-packages:
- ``config``  — environment-backed settings
- ``core``    — exception hierarchy and logging configuration
- ``archive`` — CDX index lookup, snapshot extraction, fan-out and coalescing
- ``api``     — FastAPI application factory, health and metrics routes
"""

__version__ = "0.1.0"
