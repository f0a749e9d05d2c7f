"""Structured logging for critical CSS builds.

Events are keyed by name and carry the page or stylesheet they concern:
``critical_css_generated`` / ``critical_css_failed`` per emitted page,
``renderer_launched`` / ``renderer_closed`` / ``renderer_launch_failed`` for
the shared browser, ``stylesheet_loaded`` and ``css_purged`` at debug level,
and ``build_completed`` from the command line. ``CRITICAL_CSS_LOG_JSON=1``
switches the console renderer for one JSON object per line.
"""

import logging
import sys
from typing import Optional, Union

import structlog

from .config import settings

# Playwright drives its own event loop; its debug chatter is not build output.
QUIET_LOGGERS = ("asyncio",)


def resolve_level(level: Union[int, str, None] = None) -> int:
    """Map a level name or number to a stdlib level, defaulting on ``debug``."""

    if level is None:
        return logging.DEBUG if settings.debug else logging.INFO
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def configure_logging(level: Union[int, str, None] = None) -> None:
    log_level = resolve_level(level)

    if settings.log_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or "critical_inline")
