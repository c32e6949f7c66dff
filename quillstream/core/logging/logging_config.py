"""Application-wide logging configuration."""

import logging
import sys

from quillstream.core.logging.logging_manager import logging_manager, DEFAULT_FORMAT


class StyledFormatter(logging.Formatter):
    """Formatter colouring the level name for interactive terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def configure_logging(enable_styling: bool = True, level: int = logging.INFO) -> None:
    """Configure the shared logging handler.

    Must run before the first log records are emitted.

    Args:
        enable_styling (bool): Colour level names (only for TTY output).
        level (int): Initial log level.
    """
    handler = logging.StreamHandler(sys.stderr)
    if enable_styling:
        handler.setFormatter(StyledFormatter(DEFAULT_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    logging_manager.set_handler(handler)
    logging_manager.set_log_level(level)
