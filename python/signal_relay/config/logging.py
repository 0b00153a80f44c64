"""
Logging configuration for the signaling server.

Environment Variables:
    SIGNAL_LOG_LEVEL - Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO
"""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "signal_relay"


def setup_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    name: str = ROOT_LOGGER
) -> logging.Logger:
    """
    Setup logging for the signaling server.

    Args:
        level: Log level. Default from SIGNAL_LOG_LEVEL or INFO.
        format_string: Custom format. Default: timestamp + level + name + message.
        name: Logger name.

    Returns:
        Configured logger instance.
    """
    if level is None:
        level = os.getenv("SIGNAL_LOG_LEVEL", "INFO").upper()

    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level, logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level, logging.INFO))
    handler.setFormatter(logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)

    return logger

