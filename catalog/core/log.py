import logging
import os
from typing import Any, Dict, Optional

LOGGER_NAME = "catalog"
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Install console (and optionally file) handlers on the catalog logger once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        logger.addHandler(handler)
    if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(file_handler)
    return logger


def format_context(message: str, context: Optional[Dict[str, Any]] = None) -> str:
    if not context:
        return message
    pairs = " ".join(f"{k}={v}" for k, v in context.items())
    return f"{message} | {pairs}"


class StructuredLogger:
    """Level + message + flat context map, rendered as ``message | k=v k=v``."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(LOGGER_NAME)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.info(format_context(message, context))

    def warn(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.warning(format_context(message, context))

    def error(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.error(format_context(message, context))

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._logger.debug(format_context(message, context))
