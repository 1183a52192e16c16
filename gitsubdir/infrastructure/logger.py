"""
Package-wide logger for git-subdir.
"""

import logging
import sys


LOGGER_NAME = "GitSubdir"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str = LOGGER_NAME, level: int = logging.INFO) -> logging.Logger:
    """
    Create (or fetch) the named logger with a single stderr handler.

    Args:
        name: Logger name
        level: Initial log level

    Returns:
        Configured logger
    """
    _logger = logging.getLogger(name)

    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        _logger.addHandler(handler)

    _logger.setLevel(level)
    return _logger


logger = setup_logger()
