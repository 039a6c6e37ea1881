"""Logging configuration for the nodesetup package."""
import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class _BelowWarningFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < logging.WARNING


def setup_logger(name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Set up a logger with the specified name and log level.

    Informational records go to stdout; warnings and errors go to stderr so
    that a piped install still surfaces problems.

    Args:
        name: The name of the logger (default: the ``nodesetup`` package logger)
        level: The logging level (default: logging.INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or "nodesetup")
    logger.setLevel(level)

    # Replace earlier handlers so output follows the current sys.stdout/sys.stderr
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(_BelowWarningFilter())
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)
    logger.addHandler(stderr_handler)

    # Disable debug logging for noisy libraries
    logging.getLogger('urllib3').setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return logger
