"""Structured logging configuration for plaza-py.

Application code logs through structlog. The stdlib loggers of the
Socket.IO and Engine.IO libraries are routed through the same renderer so
that transport messages look like the rest of the output.
"""

from __future__ import annotations

import logging

import structlog

TRANSPORT_LOGGERS = ("socketio", "engineio")

_SHARED_PROCESSORS: list = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderer(*, json_logs: bool) -> list:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.processors.ExceptionPrettyPrinter(), structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(*, debug: bool = False, json_logs: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        debug: Enable debug level logging, including Socket.IO transport logs.
        json_logs: Output logs as JSON (for production).
    """
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.processors.StackInfoRenderer(), *_renderer(json_logs=json_logs)],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.add_logger_name],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *_renderer(json_logs=json_logs)],
        )
    )
    for name in TRANSPORT_LOGGERS:
        transport_logger = logging.getLogger(name)
        transport_logger.handlers = [handler]
        transport_logger.propagate = False
        transport_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
