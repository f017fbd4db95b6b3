"""
Jarvis - Logging
=================
One stdout format for Jarvis modules and for the libraries Jarvis runs
on (the uvicorn server and the pymongo driver underneath motor), so a
request, its Mongo round-trips and the server access line read as one
stream.

Verbosity follows ``settings.ENV``:
  • ``"dev"``  → DEBUG
  • ``"prod"`` → WARNING

pymongo is never allowed below INFO: at DEBUG it logs every command
document, embeddings included.

Usage:
    from jarvis.src.utils.logger import get_logger
    logger = get_logger(__name__)

    configure_library_logging()      # once, before uvicorn.run(...)
"""

import logging
import sys

from jarvis.config.settings import settings

_ENV_LEVEL_MAP = {
    "dev": logging.DEBUG,
    "prod": logging.WARNING,
}
_DEFAULT_LEVEL = _ENV_LEVEL_MAP.get(settings.ENV, logging.INFO)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Library logger → lowest level it may run at.
LIBRARY_LOGGERS = {
    "uvicorn": logging.DEBUG,
    "uvicorn.error": logging.DEBUG,
    "uvicorn.access": logging.DEBUG,
    "pymongo": logging.INFO,
}


def _attach_stdout_handler(logger: logging.Logger, level: int) -> None:
    """Give *logger* exactly one Jarvis stdout handler at *level*."""
    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, "_jarvis", False):
            handler.setLevel(level)
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._jarvis = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return the named Jarvis logger, writing to stdout.

    Args:
        name:  Usually ``__name__`` of the calling module.
        level: Explicit override; otherwise derived from ``settings.ENV``.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        _attach_stdout_handler(logger, level if level is not None else _DEFAULT_LEVEL)
    return logger


def configure_library_logging(level: int | None = None) -> None:
    """Route uvicorn and pymongo records through the Jarvis format and level."""
    resolved_level = level if level is not None else _DEFAULT_LEVEL
    for name, floor in LIBRARY_LOGGERS.items():
        _attach_stdout_handler(logging.getLogger(name), max(resolved_level, floor))
