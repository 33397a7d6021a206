"""
Logging setup for applications embedding the rate limiters.

Library modules only create module level loggers; handlers are configured
here, once, by the application.
"""

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None, stream=None) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL), INFO by default
        fmt: Optional log format override
        stream: Stream for the handler, stdout by default

    Returns:
        The configured root logger
    """
    log_level = getattr(logging, (level or 'INFO').upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))
    root_logger.addHandler(handler)

    # redis-py is chatty at DEBUG
    logging.getLogger('redis').setLevel(max(log_level, logging.INFO))

    return root_logger
