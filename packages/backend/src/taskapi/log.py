"""structlog configuration.

Learn: Loggers everywhere are plain `structlog.get_logger()` calls with
dotted event names ("tokens.rotated", "auth.rejected") and key/value
context. This module only decides how those events are rendered:
console output in development, one JSON object per line otherwise.
contextvars are merged first so the request_id bound by
RequestIdMiddleware shows up on every line.
"""

import logging

import structlog


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Configure structlog once at app creation."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=True,
    )
