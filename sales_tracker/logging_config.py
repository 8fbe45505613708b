"""Logging setup for the sales tracker."""

import logging
from typing import Optional

LOGGER_NAME = "sales_tracker"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "WARNING") -> logging.Logger:
    """Install one stderr handler on the package logger.

    Calling again replaces the handler, so it always writes to the
    current ``sys.stderr``.
    """
    global _handler
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level.upper())
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_handler)
    return root


def reset_logging() -> None:
    """Remove the handler installed by configure_logging."""
    global _handler
    root = logging.getLogger(LOGGER_NAME)
    if _handler is not None:
        root.removeHandler(_handler)
        _handler = None
    root.setLevel(logging.NOTSET)
