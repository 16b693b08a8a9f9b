"""
Structured logging configuration using structlog.

Log lines go to stderr so CLI JSON output on stdout stays parseable.
Job execution binds its kind and app id as context variables, which
every logger used while the job runs picks up.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

from steam_apps_db.config import LoggingConfig, get_settings

# Libraries that log every request or statement at INFO
NOISY_LIBRARIES = ("httpx", "httpcore", "sqlalchemy.engine")


def _renderer(config: LoggingConfig) -> "Processor":
    if config.format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(config: LoggingConfig | None = None) -> None:
    """
    Configure structlog and the standard library logging it sits next to.

    Args:
        config: Logging section to apply (defaults to the global settings)
    """
    config = config or get_settings().logging

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if config.include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.append(_renderer(config))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
        level=getattr(logging, config.level),
    )
    if config.level != "DEBUG":
        for name in NOISY_LIBRARIES:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a logger with optional bound context.

    Example:
        >>> logger = get_logger(__name__, component="importer")
        >>> logger.info("Import started", total_apps=150000)
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def job_context(job_kind: str, app_id: int, **extra: Any) -> Iterator[None]:
    """Bind job identity to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(job_kind=job_kind, app_id=app_id, **extra):
        yield
