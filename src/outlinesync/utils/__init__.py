"""Utility helpers shared across the package."""

from .logging import PACKAGE_LOGGER, get_log_path, get_logger, setup_logging, shutdown_logging

__all__ = ["PACKAGE_LOGGER", "setup_logging", "shutdown_logging", "get_logger", "get_log_path"]
