"""Logging configuration."""

import logging
import sys

from tourhub.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that drown out request logs below WARNING.
QUIET_LOGGERS = ("pymongo", "pymongo.topology", "pymongo.connection")


def setup_logging(level: str | None = None) -> None:
    """Configure application logging.

    Args:
        level: Overrides ``settings.log_level`` when given.
    """
    settings = get_settings()
    resolved = (level or settings.log_level).upper()

    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if settings.debug:
        logging.getLogger("tourhub").setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        logging.Logger: Configured logger instance.
    """
    return logging.getLogger(name)
