"""
Centralized logging configuration for kvetch.

The library only creates ``kvetch.*`` loggers; handlers are installed by
``setup_logging`` (called from the CLI or from a test suite's conftest).
"""
import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging for kvetch.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to write logs to
        format_string: Custom format string

    Returns:
        The top-level kvetch logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    numeric_level = getattr(logging, level.upper())
    formatter = logging.Formatter(format_string)

    kvetch_logger = logging.getLogger("kvetch")
    kvetch_logger.setLevel(numeric_level)

    # Replace handlers from an earlier call instead of stacking them
    for handler in list(kvetch_logger.handlers):
        kvetch_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    kvetch_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        kvetch_logger.addHandler(file_handler)

    return kvetch_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"kvetch.{name}")
