"""Logging configuration"""

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "wallet_tracker"
LOG_LEVEL_ENV = "WALLET_TRACKER_LOG_LEVEL"


def configure_logging(level: Optional[str] = None, console: Optional[Console] = None) -> logging.Logger:
    """
    Send package log records to a rich handler on stderr.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Level name such as "INFO"; falls back to $WALLET_TRACKER_LOG_LEVEL, then WARNING
        console: Console to render to, defaults to a stderr console
    """
    level = (level or os.getenv(LOG_LEVEL_ENV) or "WARNING").upper()

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level, logging.WARNING))

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
