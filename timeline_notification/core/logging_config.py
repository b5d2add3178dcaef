"""Structured logging shared by the host and every timeline plugin."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

DEFAULT_LOG_LEVEL = "INFO"
_LOGGER_NAME = "timeline"
_configured_level: str | None = None


def configure_logging(level: str | None = None) -> str:
    """Configure stdlib logging and structlog once per process.

    Calling again with a different level only adjusts the root level, so
    loggers already handed out keep working.
    """

    global _configured_level

    resolved = (level or os.getenv("TIMELINE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    numeric_level = getattr(logging, resolved, logging.INFO)

    if _configured_level is None:
        logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.TimeStamper(fmt="iso", utc=True),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
    elif resolved == _configured_level:
        return resolved

    logging.getLogger().setLevel(numeric_level)
    _configured_level = resolved
    return resolved


def get_logger(**initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Return a structured logger, optionally binding context such as ``service``."""

    if _configured_level is None:
        configure_logging()
    logger = structlog.get_logger(_LOGGER_NAME)
    if initial_context:
        return logger.bind(**initial_context)
    return logger


def log_event(
    logger: structlog.stdlib.BoundLogger,
    service: str,
    event: str,
    level: str = "warning",
    **extra: Any,
) -> None:
    """Emit ``event`` as a flat structured line with ``service`` bound in context."""

    bound = logger.bind(service=service)
    log_method = getattr(bound, level.lower(), None)
    if not callable(log_method):
        log_method = bound.info

    log_method(event, **extra)
