"""Logging helpers."""

import logging
import os
from logging.handlers import RotatingFileHandler

from interview_media.core.config import Settings, get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Configure the ``interview_media`` logger from settings.

    Adds a console handler, plus a rotating file handler when ``log_dir`` is
    set. Calling it twice does not duplicate handlers.

    Returns:
        The configured package logger.
    """
    settings = settings or get_settings()
    logger = logging.getLogger("interview_media")
    logger.setLevel(settings.log_level.upper())

    if not logger.handlers:
        fmt = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

        console = logging.StreamHandler()
        console.setFormatter(fmt)
        logger.addHandler(console)

        if settings.log_dir:
            os.makedirs(settings.log_dir, exist_ok=True)
            log_path = os.path.join(settings.log_dir, "interview_media.log")
            handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3)
            handler.setFormatter(fmt)
            logger.addHandler(handler)

    return logger
