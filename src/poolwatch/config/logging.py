"""structlog setup for the pool watcher."""

import logging
import sys

import structlog
from structlog.typing import Processor

from poolwatch.config.settings import get_settings

# Chatty transport loggers; kept at WARNING unless debug is on
NOISY_LOGGERS = ("httpx", "httpcore", "websockets")


def _renderer(debug: bool) -> list[Processor]:
    if debug:
        return [structlog.dev.ConsoleRenderer()]
    # Handlers log with exc_info; JSON output needs the traceback as data
    return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]


def configure_logging() -> None:
    """Configure structlog and the stdlib loggers used by httpx and websockets."""
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            *_renderer(settings.debug),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(name)s %(levelname)s %(message)s",
        stream=sys.stdout,
        level=level,
    )
    library_level = level if settings.debug else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
