"""Structured logging for the auditing engine.

Wraps structlog so every module obtains its logger the same way:

    from aumos_auditing.observability import get_logger

    logger = get_logger(__name__)
    logger.info("Audit record appended", audit_id=record.id)

Audit payloads (old/new values) must never be passed to the logger, only
identifiers and counts.
"""

import logging
import sys
from typing import Any, cast

import structlog

_LEVELS: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Configure structlog for the process.

    Call once at startup (the FastAPI lifespan handler does this). Until it is
    called, structlog's default development configuration is used.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: "json" for production, "console" for local development.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS.get(level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name.

    Args:
        name: Logger name, typically ``__name__``.

    Returns:
        A bound structlog logger accepting keyword context.
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
