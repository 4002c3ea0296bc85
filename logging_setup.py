"""
Logging configuration for the finance tracker backend.

Entry points (the API apps, scripts) call ``configure_logging()`` once.
Modules only call ``get_logger(__name__)`` and never attach handlers.
"""
import logging
import os
import sys
from typing import IO, Optional, Union

ROOT_LOGGER_NAME = "finance_tracker"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_configured = False


def _parse_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv("FINANCE_TRACKER_LOG_LEVEL", "INFO")
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    value = getattr(logging, level, None)
    return value if isinstance(value, int) else logging.INFO


def configure_logging(level: Union[int, str, None] = None, stream: IO[str] = sys.stderr) -> None:
    """Attach a single stream handler to the package logger. Safe to call twice."""
    global _configured
    if _configured:
        return

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(_parse_level(level))
    logger.propagate = False
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a child of the package logger (``finance_tracker.<name>``)."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not _configured and not root.handlers:
        root.addHandler(logging.NullHandler())
    if not name:
        return root
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
