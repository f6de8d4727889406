"""Logging helpers for the permission set removal action."""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from permset_revoker.config import load_settings

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# httpx logs every request line (including query strings) at INFO.
_QUIET_LOGGERS = ("httpx", "httpcore")

_logging_configured = False
_logging_lock = threading.Lock()

_logger = logging.getLogger(__name__)


def _formatter() -> logging.Formatter:
    return logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)


def configure_logging(level: str | None = None) -> None:
    """Install stderr (and optional file) handlers on the root logger.

    ``level`` overrides ``LOG_LEVEL`` when given.
    """
    global _logging_configured

    settings = load_settings()
    level_name = (level or settings.logging.level).upper()
    resolved_level = getattr(logging, level_name, None)
    if not isinstance(resolved_level, int):
        resolved_level = logging.INFO

    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(_formatter())
    handlers.append(stream_handler)

    if settings.logging.file:
        try:
            Path(settings.logging.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(settings.logging.file)
            file_handler.setFormatter(_formatter())
            handlers.append(file_handler)
        except OSError as exc:
            _logger.warning("Failed to open log file %s: %s", settings.logging.file, exc)

    logging.basicConfig(level=resolved_level, handlers=handlers, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))

    if resolved_level != getattr(logging, level_name, None):
        _logger.warning("Unknown log level %r, using INFO", level_name)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    if not _logging_configured:
        with _logging_lock:
            if not _logging_configured:
                configure_logging()
    return logging.getLogger(name)
