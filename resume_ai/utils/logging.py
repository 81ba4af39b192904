"""Logging setup for the resume-ai command line.

Library modules only create ``logging.getLogger(__name__)`` loggers under the
``resume_ai`` namespace; handlers are installed here, by the application.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "resume_ai"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class _CliHandler(logging.StreamHandler):
    """Marker type so repeated configuration replaces our own handler only."""


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> logging.Logger:
    """Send ``resume_ai`` records to ``stream`` (stderr by default).

    Generation events logged by ``LoggingEventSink`` end up here as
    ``key=value`` lines, next to the client's retry warnings. Calling this
    again swaps the handler and level.

    Args:
        level: Level name; unknown names fall back to INFO.
        stream: Destination for log lines.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    for handler in [h for h in logger.handlers if isinstance(h, _CliHandler)]:
        logger.removeHandler(handler)

    handler = _CliHandler(stream or sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(log_level)
    # Keep CLI output from being duplicated by a root handler
    logger.propagate = False
    return logger


def reset_logging() -> None:
    """Undo ``configure_logging`` (used between tests)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in [h for h in logger.handlers if isinstance(h, _CliHandler)]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
