"""Structured logging with per-request context.

structlog renders every record, including those from plain
``logging.getLogger(__name__)`` loggers, as JSON (or a console layout in
development).  Request-scoped fields such as ``trace_id`` and ``user_id``
live in structlog's contextvars and are merged into every line.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog


def new_trace_id() -> str:
    """Start a fresh log context carrying a new trace id."""
    trace_id = uuid.uuid4().hex
    set_trace_id(trace_id)
    return trace_id


def set_trace_id(trace_id: str) -> None:
    """Start a fresh log context carrying *trace_id*."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(trace_id=trace_id)


def bind_user(user_id: str) -> None:
    structlog.contextvars.bind_contextvars(user_id=user_id)


def setup_logging(level: str = "INFO", format: str = "json") -> None:
    """Route stdlib and structlog loggers through one renderer.

    Args:
        level: Root log level name.
        format: ``"json"`` for production, ``"console"`` for development.
    """
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # uvicorn installs its own handlers; send its records through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True
