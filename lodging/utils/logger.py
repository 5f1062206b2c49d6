"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

from lodging.utils.config import get_settings


_LOGGER_INITIALIZED = False
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure process-wide logging once.

    Engine commits, skipped placements and HTTP failures all go through the
    same pipe-separated format so one event's history reads as one stream.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()

    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT, stream=sys.stdout)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger for the requested module."""
    configure_logging()
    return logging.getLogger(name)


def log_fields(**fields: Any) -> str:
    """Render `key=value` pairs joined the same way as the log format."""
    return " | ".join(
        f"{key}={value}" for key, value in fields.items() if value is not None
    )
