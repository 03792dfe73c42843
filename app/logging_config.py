"""Logging setup for the service.

All modules log through ``logging.getLogger(__name__)`` under the ``app``
namespace; this module attaches a single stream handler to that namespace.
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the ``app`` logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...)

    Returns:
        Configured ``app`` logger
    """
    logger = logging.getLogger("app")
    logger.setLevel(level.upper())

    # Avoid stacking handlers when the app is reloaded
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
