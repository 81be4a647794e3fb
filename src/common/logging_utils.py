"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; this module owns
the single root handler plus the small helpers used for structured DEBUG
traces (``extra_context``, ``is_debug_enabled``, ``Timer``).
"""
from __future__ import annotations

import logging
import os
import sys
import time
from typing import Any, Dict, Optional

from constants import Constants

_HANDLER_ATTR = "_installplan_handler"


def _resolve_level(level: Optional[str]) -> int:
    """Map a level name (CLI or environment) to a logging level value."""
    name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or Constants.DEFAULT_LOG_LEVEL)
    value = getattr(logging, str(name).strip().upper(), None)
    if not isinstance(value, int):
        return logging.INFO
    return value


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    quiet: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        level: Level name; falls back to ``INSTALLPLAN_LOG_LEVEL`` then INFO.
        log_file: Optional path; when given, records go to this file.
        quiet: Suppress console output entirely when no log file is given.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_ATTR, False):
            root.removeHandler(handler)
            handler.close()

    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    elif quiet:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    setattr(handler, _HANDLER_ATTR, True)

    root.addHandler(handler)
    root.setLevel(_resolve_level(level))


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log record.

    ``None`` values are dropped so callers can pass optional fields freely.
    """
    return {key: value for key, value in fields.items() if value is not None}


class Timer:
    """Context manager measuring wall-clock duration in milliseconds."""

    def __init__(self):
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed time so far (or total, once the block has exited)."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 3)
