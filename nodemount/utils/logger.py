"""Logging setup for nodemount"""

import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

DEFAULT_TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'

ROOT_LOGGER_NAME = 'nodemount'


def get_logger(name: str) -> logging.Logger:
    """Get a module logger"""
    return logging.getLogger(name)


def setup_logging(level: str = 'INFO', log_format: str = 'text',
                  fmt: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Configure the nodemount root logger.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        log_format: 'text' for human-readable lines, 'json' for one JSON
            object per record
        fmt: Optional format string overriding the default for the chosen
            log_format
        stream: Output stream (default: stderr)

    Returns:
        The configured root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    handler = logging.StreamHandler(stream or sys.stderr)
    if log_format == 'json':
        handler.setFormatter(jsonlogger.JsonFormatter(fmt or DEFAULT_JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt or DEFAULT_TEXT_FORMAT))

    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.propagate = False

    return logger
