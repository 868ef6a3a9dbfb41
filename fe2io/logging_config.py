"""Process-wide logging setup.

The client runs headless, so stderr is the status display: console output
is on by default and uses a short format. A rotating UTF-8 log file with the
detailed format can be added with ``log_file``.

Calling setup_logging() again reconfigures the existing handlers instead of
adding new ones.

Usage:
    from fe2io.logging_config import setup_logging
    setup_logging(level="DEBUG", log_file="fe2io.log")

Environment overrides:
    FE2IO_LOG_LEVEL=DEBUG|INFO|WARNING|ERROR
    FE2IO_LOG_FILE=path/to/file.log
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path

CONSOLE_HANDLER_NAME = "fe2io_console"
FILE_HANDLER_NAME = "fe2io_file"

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d [%(threadName)s] | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# websockets logs every frame at DEBUG; urllib3 logs every clip fetch
_NOISY_LOGGERS = ("websockets", "asyncio", "urllib3")


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    return logging._nameToLevel.get(name, logging.INFO)


def _ensure_handler(
    root: logging.Logger, name: str, factory: Callable[[], logging.Handler]
) -> logging.Handler:
    for handler in root.handlers:
        if handler.name == name:
            return handler
    handler = factory()
    handler.name = name
    root.addHandler(handler)
    return handler


def _log_path(log_file: str) -> Path:
    path = Path(log_file).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    *,
    level: str | int = "INFO",
    log_file: str | None = None,
    enable_console: bool = True,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """Configure the root logger and return it."""
    level = os.environ.get("FE2IO_LOG_LEVEL") or level
    log_file = os.environ.get("FE2IO_LOG_FILE") or log_file
    threshold = _parse_level(level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)  # handlers filter

    if enable_console:
        console = _ensure_handler(root, CONSOLE_HANDLER_NAME, logging.StreamHandler)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, CONSOLE_DATE_FORMAT))
        console.setLevel(threshold)

    if log_file:
        path = _log_path(log_file)
        file_handler = _ensure_handler(
            root,
            FILE_HANDLER_NAME,
            lambda: RotatingFileHandler(
                str(path), maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            ),
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, FILE_DATE_FORMAT))
        file_handler.setLevel(threshold)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging initialized | level=%s file=%s console=%s",
        logging.getLevelName(threshold),
        log_file,
        enable_console,
    )
    return root
