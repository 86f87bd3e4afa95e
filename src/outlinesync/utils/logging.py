"""Logging setup for hosts embedding the outline engine.

The engine logs through ``logging.getLogger(__name__)`` in every module and
never configures logging on import. Hosts that want a log file call
:func:`setup_logging`, which attaches handlers to the ``outlinesync`` package
logger only, so an application's own root configuration is left alone.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["PACKAGE_LOGGER", "setup_logging", "shutdown_logging", "get_logger", "get_log_path"]

PACKAGE_LOGGER = "outlinesync"
LOG_FILE_NAME = "outlinesync.log"
_DEFAULT_LOG_DIR = Path.home() / ".outlinesync" / "logs"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
# The event bus logs every publish at debug level.
_CHATTY_LOGGERS: tuple[str, ...] = (f"{PACKAGE_LOGGER}.events",)

_handlers: list[logging.Handler] = []
_log_path: Path | None = None


def setup_logging(
    level: int | str | None = None,
    *,
    log_dir: Path | str | None = None,
    console: bool = False,
    propagate: bool = True,
    debug_events: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Attach a rotating log file (and optionally stderr) to the package logger.

    ``level`` falls back to ``OUTLINESYNC_LOG_LEVEL`` and then ``INFO``. The
    log directory comes from ``log_dir``, ``OUTLINESYNC_LOG_DIR``, or
    ``~/.outlinesync/logs``. Calling again without ``force`` keeps the first
    configuration.
    """

    global _log_path
    if _log_path is not None and not force:
        return _log_path
    shutdown_logging()

    resolved_level = _resolve_level(level)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / LOG_FILE_NAME

    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    _handlers.append(file_handler)
    if console:
        _handlers.append(logging.StreamHandler())

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _handlers:
        handler.setLevel(resolved_level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(resolved_level)
    package_logger.propagate = propagate

    chatty_level = resolved_level if debug_events else max(resolved_level, logging.INFO)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    _log_path = log_path
    package_logger.debug("Outline logging configured at %s", log_path)
    return log_path


def shutdown_logging() -> None:
    """Detach and close handlers installed by :func:`setup_logging`."""

    global _log_path
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    while _handlers:
        handler = _handlers.pop()
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _log_path = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""

    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    return _log_path


def _resolve_level(level: int | str | None) -> int:
    raw = level if level is not None else os.environ.get("OUTLINESYNC_LOG_LEVEL")
    if raw is None or raw == "":
        return logging.INFO
    if isinstance(raw, int):
        return raw
    text = raw.strip()
    if text.isdigit():
        return int(text)
    resolved = logging.getLevelName(text.upper())
    if isinstance(resolved, int):
        return resolved
    raise ValueError(f"Unknown log level {raw!r}")


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("OUTLINESYNC_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()
