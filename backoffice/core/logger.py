"""Logging setup for the back-office service.

Every module logs through ``logging.getLogger(__name__)``, which places it
under the ``backoffice`` namespace. ``configure_logging`` attaches console
and rotating-file handlers to that namespace once, at process start.
"""

import logging
import logging.handlers
import os
from typing import Optional

from backoffice.core.config import Settings, get_settings

ROOT_LOGGER_NAME = "backoffice"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_level(value: str) -> int:
    level = value.upper()
    if level not in _LEVELS:
        raise ValueError(f"Invalid log level: {value}. Must be one of: {', '.join(_LEVELS)}")
    return getattr(logging, level)


def configure_logging(
    settings: Optional[Settings] = None,
    *,
    name: str = ROOT_LOGGER_NAME,
    console: bool = True,
) -> logging.Logger:
    """Configure the package logger from settings.

    ``log_level`` sets the level, ``log_to_file`` adds a rotating
    ``<log_dir>/<name>.log``. Calling it again replaces the handlers
    installed by the previous call.

    Raises:
        ValueError: If ``log_level`` is not a standard level name
    """
    settings = settings or get_settings()
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(settings.log_level))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler())
    if settings.log_to_file:
        os.makedirs(settings.log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, f"{name}.log"),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        ))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
