"""
Structured logging configuration using structlog.

JSON output in production, colored console output elsewhere. Standard
library loggers (asyncpg, redis, uvicorn, our storage layer) are routed
through the same handler so every line carries a level and timestamp.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from src.config.settings import get_settings

_NOISY_LOGGERS = ("asyncio", "asyncpg", "httpx", "httpcore", "redis", "uvicorn.access")


def setup_logging(level: str | None = None) -> None:
    """
    Configure structured logging for the service.

    Args:
        level: Optional level override (e.g. from ``--debug``); defaults
            to ``LOG_LEVEL`` from settings.

    Usage:
        setup_logging()
        logger = structlog.get_logger(__name__)
        logger.info("Reading ingested", sensor_type="gas", value=610)
    """
    settings = get_settings()
    log_level = (level or settings.log_level).upper()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to every subsequent log line in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
