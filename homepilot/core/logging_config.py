"""
Logging setup for the "homepilot" logger hierarchy.

Every module logs through ``logging.getLogger("homepilot.<area>")``;
this installs a single stdout handler on the parent logger so all of
them share one format.
"""

import logging
import sys
from typing import Optional

from homepilot.core.config import settings

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root "homepilot" logger.

    Safe to call more than once: the handler is only added the first time.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL (DEBUG when settings.DEBUG)

    Returns:
        The configured "homepilot" logger
    """
    if level is None:
        level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL

    logger = logging.getLogger("homepilot")
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger
