"""
Centralized logging configuration for the notifier.

This module provides a single setup_logging function that configures
logging for the daemon with:
- Console output on stdout
- Optional file output (appended, reopened if rotated externally)
- Level taken from the LOGGING_LEVEL environment variable (default: info)
"""

import logging
import logging.handlers
import os
import sys
import threading
from pathlib import Path
from typing import Optional

# Thread-safe lock for logging configuration
_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)
_LEVEL_ENV = "LOGGING_LEVEL"
_DEFAULT_LEVEL = "info"
_FORMAT = "%(asctime)s%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_level(raw: Optional[str] = None) -> int:
    """Map a level name such as ``debug`` or ``WARN`` to a logging level."""
    name = (raw if raw is not None else os.getenv(_LEVEL_ENV, _DEFAULT_LEVEL)).strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    return logging.INFO


def _close_handlers(logger: logging.Logger) -> None:
    """Close all handlers for a logger, logging any errors."""
    for handler in list(logger.handlers):
        try:
            handler.close()
        except OSError as e:
            _MODULE_LOGGER.debug("Handler close failed for logger '%s': %s", logger.name, e)


def _build_console_handler(level: int) -> logging.Handler:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
    console_handler.setLevel(level)
    return console_handler


def _build_file_handler(log_file: str, level: int) -> logging.Handler:
    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.WatchedFileHandler(log_path, mode="a")
    file_handler.setFormatter(logging.Formatter(_FORMAT, _DATE_FORMAT))
    file_handler.setLevel(level)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("aiokafka").setLevel(logging.WARNING)
    logging.getLogger("kafka").setLevel(logging.WARNING)


def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> None:
    """Configure logging for the daemon"""

    with _config_lock:
        root_logger = logging.getLogger()
        _close_handlers(root_logger)
        root_logger.handlers = []

        resolved_level = resolve_log_level(level)
        root_logger.addHandler(_build_console_handler(resolved_level))
        if log_file:
            root_logger.addHandler(_build_file_handler(log_file, resolved_level))

        root_logger.setLevel(resolved_level)
        _suppress_noisy_third_parties()
