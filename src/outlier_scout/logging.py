"""Structured logging configuration.

Every entry point (API, worker, CLI) calls ``setup_logging`` once at import
time. Stdlib loggers from third-party libraries are routed through the same
structlog formatter so a scrape run reads as one stream.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from outlier_scout.config import settings

# Library loggers that are too chatty at INFO during a batch
_QUIET_LOGGERS: dict[str, int] = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "celery": logging.INFO,
}


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Overrides ``settings.log_level``.
        log_format: ``"json"`` or ``"console"``; overrides ``settings.log_format``.
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind key/values (run_id, task_id, channel_id) to every log line in the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for a module."""
    return structlog.get_logger(name)
