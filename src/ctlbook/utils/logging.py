"""Logging setup for ctlbook: a rotating log file plus an optional console."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Any, TextIO

__all__ = ["setup_logging", "get_log_path", "log_dir", "logging_summary", "LOG_FORMAT"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOG_FILE_NAME = "ctlbook.log"
_LOG_DIR_ENV = "CTLBOOK_LOG_DIR"
_DEFAULT_LOG_DIR = Path.home() / ".ctlbook" / "logs"
# Textual logs every message pump event at DEBUG.
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "textual", "markdown_it")
_LOG_PATH: Path | None = None
_LEVEL: int | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    directory: Path | str | None = None,
    console: bool = True,
    stream: TextIO | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route the root logger to ``ctlbook.log`` and, unless ``console`` is off, stderr.

    The terminal UI owns the screen while it runs, so it reconfigures with
    ``console=False`` and relies on the log file alone. Repeated calls are
    no-ops unless ``force`` is set.
    """

    global _LOG_PATH, _LEVEL
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    target = log_dir(directory)
    target.mkdir(parents=True, exist_ok=True)
    path = target / _LOG_FILE_NAME
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=_DATE_FORMAT)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler(stream))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet_level = max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _LOG_PATH = path
    _LEVEL = level
    return path


def log_dir(directory: Path | str | None = None) -> Path:
    """Directory holding the log file: argument, then ``CTLBOOK_LOG_DIR``, then ``~/.ctlbook/logs``."""

    return Path(directory or os.environ.get(_LOG_DIR_ENV) or _DEFAULT_LOG_DIR).expanduser()


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def logging_summary() -> dict[str, Any]:
    """Where logs go and at which level, for ``--dump-settings``."""

    return {
        "log_path": str(_LOG_PATH) if _LOG_PATH is not None else None,
        "level": logging.getLevelName(_LEVEL) if _LEVEL is not None else None,
    }
