"""
Logging setup for ADB File Explorer.
Modules log through logging.getLogger(__name__); this only wires handlers.
"""

import logging
import logging.handlers
import os
import threading
from typing import Optional

from platformdirs import user_log_dir

from ..settings import APP_NAME

ROOT_LOGGER_NAME = "adb_file_explorer"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"

_setup_lock = threading.Lock()
_configured = False


def get_log_file_path() -> str:
    """Return the per-user log file location."""
    return os.path.join(user_log_dir(APP_NAME), f"{APP_NAME}.log")


def setup_logging(level: str = "INFO", log_to_file: bool = False,
                  log_file: Optional[str] = None) -> logging.Logger:
    """Configure the package logger once and return it.

    Subsequent calls only adjust the level.
    """
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    with _setup_lock:
        if _configured:
            return logger

        formatter = logging.Formatter(LOG_FORMAT)
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

        if log_to_file or log_file:
            path = log_file or get_log_file_path()
            try:
                os.makedirs(os.path.dirname(path), exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    path, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8"
                )
                file_handler.setFormatter(formatter)
                logger.addHandler(file_handler)
            except OSError as e:
                logger.warning(f"File logging disabled, cannot open {path}: {e}")

        logger.propagate = False
        _configured = True
    return logger
