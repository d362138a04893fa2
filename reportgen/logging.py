"""Structured logging configuration.

Log output goes to stderr; stdout is left to the CLI's result line.
"""

import logging
import sys
from typing import Any

import structlog

from reportgen.config import Settings, get_settings

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ("matplotlib", "matplotlib.font_manager", "PIL", "asyncio")


def setup_logging(settings: Settings | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and standard library logging.

    Args:
        settings: Application settings, defaults to the cached settings
        json_output: Force JSON lines on or off; on in production by default
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    if json_output is None:
        json_output = settings.is_production

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
