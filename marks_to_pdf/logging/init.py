from __future__ import annotations

import logging
import sys

"""Logging initialization with labeled prefixes.

Console output uses INFO|WARN|ERROR|SUMMARY prefixes on stdout. When mail
mode is active the same records are mirrored to a timestamped sidecar file
(see marks_to_pdf.logging.run_log). Progress markers (".", "x", "S") are not
log records; they are written by marks_to_pdf.services.progress.
"""

__all__ = [
    "LOGGER_NAME",
    "LabeledFormatter",
    "get_logger",
    "log_summary",
    "reset_logging",
    "set_debug",
    "setup_logging",
]

LOGGER_NAME = "marks_to_pdf"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Custom formatter that adds labeled prefixes to log messages.

    Blank messages stay blank so that spacer lines in the run log do not
    turn into a dangling "INFO".
    """

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if not message:
            return ""
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{level_label} {message}"


class _ConsoleHandler(logging.StreamHandler):
    """StreamHandler that always writes to the current sys.stdout."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stdout

    @stream.setter
    def stream(self, value) -> None:
        pass


def setup_logging() -> logging.Logger:
    """Setup logging with labeled prefixes for the application.

    Returns:
        Configured logger instance (idempotent)
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = _ConsoleHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)

    # root へ伝播させない (二重出力防止)
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    if _logger is None:
        return setup_logging()
    return _logger


def set_debug(enabled: bool = True) -> None:
    get_logger().setLevel(logging.DEBUG if enabled else logging.INFO)


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    _logger = None
