"""
Logging setup for the dns-inventory command.

Library modules only create module loggers; the command line configures
a single stderr handler so that stdout carries nothing but the exported
inventory.
"""

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# -v count to level
_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
}


def verbosity_to_level(verbosity: int) -> int:
    """Map a -v count onto a logging level."""
    return _LEVELS.get(verbosity, logging.DEBUG)


def setup_logging(verbosity: int = 0, stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        verbosity: Number of -v flags given on the command line
        stream: Output stream (default: stderr)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("dns_inventory")
    logger.setLevel(verbosity_to_level(verbosity))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
