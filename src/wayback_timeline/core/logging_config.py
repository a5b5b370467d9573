"""Structured logging configuration using structlog.

Call ``configure_logging()`` once at application startup (``create_app()``
and the CLI both do).  The archive pipeline logs through the stdlib::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("wayback: %d captures for @%s", count, subject)

and the API layer through structlog::

    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("request_complete", status_code=200)

Both end up in the same handler and are rendered identically.  Records
emitted while a request is being served carry its ``request_id``, set by the
middleware in ``api/main.py``.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
"""Per-request ID propagated from the HTTP middleware to log processors."""

_QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "uvicorn.access")
"""Loggers capped at WARNING outside DEBUG.

httpx logs every snapshot request at INFO and one lookup issues up to a
hundred of them.
"""


def _add_request_id(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Copy ``request_id_var`` into the event unless it is already bound."""
    request_id = request_id_var.get()
    if request_id is not None:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _pre_chain() -> list[Processor]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(console: bool) -> Processor:
    if console:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def configure_logging(log_level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route stdlib and structlog output through one structlog formatter.

    Records are rendered as newline-delimited JSON with ``timestamp``,
    ``level``, ``logger`` and ``event`` keys (plus ``request_id`` inside a
    request).  At ``"DEBUG"`` the human-readable console renderer is used and
    the HTTP client loggers are left at full verbosity.

    Calling it again replaces the previous root handler.

    Args:
        log_level: Logging verbosity string, case-insensitive.  Unknown
            values fall back to INFO.
        stream: Destination of the rendered records.  Defaults to stdout;
            the CLI passes stderr so that stdout carries only JSON results.
    """
    level_name = log_level.upper()
    debug = level_name == "DEBUG"
    pre_chain = _pre_chain()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(console=debug),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    quiet_level = logging.NOTSET if debug else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
