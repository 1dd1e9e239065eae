"""
Structured logging configuration using structlog.

JSON output when running with the production profile (searchable in the
log aggregator), colored console output everywhere else.

Usage:
    import structlog

    configure_logging(production=settings.is_production, debug=settings.DEBUG)
    logger = structlog.get_logger(__name__)
    logger.info("client created", client_id=42)

Output in production (JSON):
    {"event": "client created", "client_id": 42, "request_id": "req_...",
     "timestamp": "2024-01-01T12:00:00Z", "level": "info"}

Output in development:
    2024-01-01T12:00:00Z [info     ] client created    client_id=42
"""

import logging
import sys
from typing import Any

import structlog

from onlinebank.core.config import settings

IS_TEST = "pytest" in sys.modules


def configure_logging(production: bool | None = None, debug: bool | None = None) -> None:
    """Configure structlog with processors for the active profile."""
    if production is None:
        production = settings.is_production
    if debug is None:
        debug = settings.DEBUG

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if production:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=not IS_TEST),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Route stdlib loggers (uvicorn, sqlalchemy, apscheduler) to stdout too
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.INFO,
    )

    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
