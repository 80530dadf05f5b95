"""Logging configuration for the specmodel package.

The library only ever logs through module loggers under "specmodel".
Applications that want to see those messages call setup_logging() once.

Usage:
    from specmodel.log_config import setup_logging
    setup_logging()
"""

import logging
import sys
from typing import Optional

from specmodel.config import Settings, get_settings

PACKAGE_LOGGER = "specmodel"

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Set the package logger level from settings and attach a stream handler.

    Calling it again only updates the level.
    """
    settings = settings or get_settings()
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(_parse_level(settings.log_level))

    if not any(getattr(h, "_specmodel_handler", False) for h in pkg_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._specmodel_handler = True
        pkg_logger.addHandler(handler)

    return pkg_logger


def _parse_level(name: str) -> int:
    """Convert a level name to its numeric value, defaulting to WARNING."""
    level = logging.getLevelName(name.strip().upper())
    if isinstance(level, int):
        return level
    return logging.WARNING
