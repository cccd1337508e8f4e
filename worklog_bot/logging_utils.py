"""
Logging utilities for the work-log automation tool.

Console logging goes through the 'worklog_bot' logger. Run trails recorded
for progress snapshots are mirrored here with the same level, so the
terminal and any progress listener see the same story.
"""

import logging
import sys
from typing import Optional

from .models import LEVEL_ERROR, LEVEL_SUCCESS, LEVEL_WARN


LOGGER_NAME = 'worklog_bot'


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name for terminal output.
    """

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
            )
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(verbose: bool = False, use_colors: bool = True) -> logging.Logger:
    """
    Set up console logging.

    Args:
        verbose: If True, set level to DEBUG; otherwise INFO
        use_colors: If True, color level names when writing to a terminal

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)

    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    fmt = '%(asctime)s %(levelname)-8s | %(message)s'
    datefmt = '%H:%M:%S'
    if use_colors and sys.stdout.isatty():
        formatter = ColoredFormatter(fmt=fmt, datefmt=datefmt)
    else:
        formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get the application logger, or one of its children.

    Args:
        name: Optional child name (e.g. 'scheduler')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def log_section(title: str, logger: Optional[logging.Logger] = None):
    """Log a section header."""
    if logger is None:
        logger = get_logger()

    logger.info("")
    logger.info("=" * 60)
    logger.info(f"  {title}")
    logger.info("=" * 60)


def log_step(step: str, logger: Optional[logging.Logger] = None):
    """Log a processing step."""
    if logger is None:
        logger = get_logger()

    logger.info(f"→ {step}")


def log_error(error: str, logger: Optional[logging.Logger] = None):
    """Log an error message with consistent formatting."""
    if logger is None:
        logger = get_logger()

    logger.error(f"✗ {error}")


def log_success(message: str, logger: Optional[logging.Logger] = None):
    """Log a success message."""
    if logger is None:
        logger = get_logger()

    logger.info(f"✓ {message}")


def log_warning(warning: str, logger: Optional[logging.Logger] = None):
    """Log a warning message."""
    if logger is None:
        logger = get_logger()

    logger.warning(f"⚠ {warning}")


def log_run_entry(level: str, message: str, logger: Optional[logging.Logger] = None):
    """
    Mirror a run log entry to the console logger.

    Args:
        level: Run log level (info, warn, error, success)
        message: Entry message
        logger: Logger instance (uses default if None)
    """
    if level == LEVEL_SUCCESS:
        log_success(message, logger)
    elif level == LEVEL_WARN:
        log_warning(message, logger)
    elif level == LEVEL_ERROR:
        log_error(message, logger)
    else:
        (logger or get_logger()).info(message)
