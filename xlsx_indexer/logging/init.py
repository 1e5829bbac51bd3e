from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Every line printed by the tool starts with a label:
INFO | WARN | ERROR | SUMMARY (plus DEBUG with --debug).

Modules log through ``logging.getLogger(__name__)``; since they all live
under the ``xlsx_indexer`` package their records reach the handler installed
here.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "get_logger",
    "log_summary",
    "reset_logging",
    "set_debug",
    "setup_logging",
]

LOGGER_NAME = "xlsx_indexer"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Formatter producing ``LABEL message`` lines."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{level_label} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging() -> logging.Logger:
    """Configure the package logger (idempotent).

    Returns:
        The ``xlsx_indexer`` logger writing labeled lines to stdout.
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # ルートロガーへの伝播を止めて二重出力を防ぐ
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def set_debug(enabled: bool = True) -> None:
    """Switch the package logger and its handlers to DEBUG (or back to INFO)."""
    logger = get_logger()
    level = logging.DEBUG if enabled else logging.INFO
    for h in logger.handlers:
        h.setLevel(level)
    logger.setLevel(level)


def log_summary(message: str) -> None:
    """Log ``message`` at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger. Mainly for tests."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers[:]:
            _logger.removeHandler(handler)
    _logger = None
