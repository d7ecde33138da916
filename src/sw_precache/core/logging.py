"""Logging setup for the precache build CLI.

Handlers attach to the ``sw_precache`` package logger rather than the root
logger, so embedding applications keep control of their own logging. Console
output goes to stderr; stdout is reserved for the JSON summary.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "sw_precache"
_LOG_FORMAT = "%(asctime)s,%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console_handler: logging.Handler | None = None
_file_handlers: dict[str, logging.Handler] = {}


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


def _formatter() -> logging.Formatter:
    return logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach the console handler once; later calls only adjust the level."""
    global _console_handler
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    if _console_handler is None:
        _console_handler = _StderrHandler()
        _console_handler.setFormatter(_formatter())
        package_logger.addHandler(_console_handler)
    _console_handler.setLevel(level)
    return package_logger


def add_file_handler(path: Path, level: int = logging.INFO) -> None:
    """Also write build logs to ``path``, once per resolved path."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    resolved = str(path.resolve())
    if resolved in _file_handlers:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    package_logger.addHandler(handler)
    _file_handlers[resolved] = handler
