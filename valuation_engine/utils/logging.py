"""Structured logging for valuation runs."""

import sys
import logging
import logging.handlers
from pathlib import Path
from typing import List
import structlog
from structlog.stdlib import LoggerFactory

from valuation_engine.models.config import ValuationEngineConfig

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _build_processors(log_format: str) -> List:
    """Shared processor chain with the renderer for the configured format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def setup_logging(config: ValuationEngineConfig) -> None:
    """
    Route structlog through stdlib logging using the engine configuration.

    Output goes to stdout, plus a rotating file when ``log_file`` is set.
    Safe to call more than once; handlers installed by a previous call are
    replaced.
    """
    level = getattr(logging, config.log_level.upper())

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_valuation_engine", False):
            root.removeHandler(handler)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._valuation_engine = True
        root.addHandler(handler)

    root.setLevel(level)

    structlog.configure(
        processors=_build_processors(config.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **context) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, optionally bound to initial context."""
    bound = structlog.get_logger(name)
    return bound.bind(**context) if context else bound
