"""Logging bootstrap for the command-line entry points.

stdout carries the protocol stream in the stdio modes, so every log line
goes to stderr.
"""

import logging
import sys

LOGGER_NAME = "mcpbridge"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Send mcpbridge.* logs to stderr at the given level.

    Existing handlers on the namespace logger are replaced, so calling this
    twice does not duplicate output.

    Args:
        level: Logging level for the namespace.

    Returns:
        The configured namespace logger.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    bridge_logger = logging.getLogger(LOGGER_NAME)
    bridge_logger.setLevel(level)
    bridge_logger.handlers.clear()
    bridge_logger.addHandler(handler)
    bridge_logger.propagate = False
    return bridge_logger


def level_from_flags(verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO
