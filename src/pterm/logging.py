"""Logging setup for the ``pterm`` package logger.

The package logger level gates both handlers; the file handler itself accepts
everything that gets through. The log file rotates since every CLI invocation
appends to the same one.
"""

from __future__ import annotations

import logging as py_logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

ROOT_LOGGER = "pterm"

LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3

DEFAULT_LOG_PATH = Path("~/.config/pterm/logs/pterm.log")
_CWD_LOG_PATH = Path(".pterm/logs/pterm.log")
_CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s:%(lineno)d %(message)s"


def default_log_path() -> Path:
    """Per-user log file, or one under the working directory when HOME is unknown."""
    try:
        return DEFAULT_LOG_PATH.expanduser().resolve()
    except RuntimeError:
        return (Path.cwd() / _CWD_LOG_PATH).resolve()


def normalize_level(level: str) -> str:
    normalized = level.strip().upper()
    return "WARN" if normalized == "WARNING" else normalized


def resolve_level(level: str) -> int:
    return LOG_LEVELS.get(normalize_level(level), py_logging.INFO)


def _console_handler(stream: TextIO | None, level: int) -> py_logging.Handler:
    handler = py_logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(py_logging.Formatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(log_file: str | Path) -> py_logging.Handler:
    path = Path(log_file).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(py_logging.DEBUG)
    handler.setFormatter(py_logging.Formatter(_FILE_FORMAT))
    return handler


def _reset(logger: py_logging.Logger) -> None:
    while logger.handlers:
        handler = logger.handlers[0]
        logger.removeHandler(handler)
        handler.close()


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    console_level = resolve_level(level)
    logger = py_logging.getLogger(ROOT_LOGGER)
    logger.setLevel(console_level)
    _reset(logger)
    logger.propagate = False
    logger.addHandler(_console_handler(stream, console_level))

    if log_file is not None:
        try:
            logger.addHandler(_file_handler(log_file))
        except OSError as exc:
            logger.warning("log-file unavailable path=%s error=%s", log_file, exc)
    return logger
