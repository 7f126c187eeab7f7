"""
Logging for SmartCube Core

Every module logs through a child of the "smartcube" logger, which writes
plain "[LEVEL] name: message" lines to stdout.
"""
import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "smartcube"
DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def _default_level() -> int:
    # Deferred; core/__init__ imports modules that log at import time
    from ..core.config import Config
    return logging.DEBUG if Config.DEBUG else logging.INFO


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: Optional[int] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure a named logger once and return it

    Args:
        name: Logger name
        level: Explicit level; DEBUG when SMARTCUBE_DEBUG is set, else INFO
        format_string: Override for DEFAULT_FORMAT

    Returns:
        The logger, untouched if it already has a handler
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = _default_level() if level is None else level
    stream = logging.StreamHandler(sys.stdout)
    stream.setLevel(level)
    stream.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))

    logger.setLevel(level)
    logger.addHandler(stream)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger, e.g. get_logger(__name__) -> "smartcube.scheduler" """
    short_name = name.rsplit('.', 1)[-1]
    return setup_logger(f"{ROOT_LOGGER_NAME}.{short_name}")
