"""
Logging setup.

Modules log through structlog:

    import structlog

    logger = structlog.get_logger()
    logger.info("Role created", role="editor")

Call configure_logging() once at startup to pick the renderer and level.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from .config import LoggingSettings, get_settings


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Uses JSON output when settings.format == "json", console output otherwise.
    """
    settings = settings or get_settings().logging
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(format="%(message)s", level=level)

    renderer: Any
    if settings.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
