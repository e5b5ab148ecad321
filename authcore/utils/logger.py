"""
Authcore Logger
Module loggers under the authcore namespace
"""

import logging
import sys
from typing import Optional

from .config import get_settings

PACKAGE_LOGGER = __name__.split(".")[0]


def _in_package(name: str) -> bool:
    return name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}.")


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger for a module

    Loggers under the authcore namespace carry no level or handler of their
    own. They inherit both from the package logger that setup_logging()
    configures, so changing the level there reaches every module. Names
    outside the namespace (scripts, the bare service name) get a console
    handler at the configured level.

    Args:
        name: Logger name (usually __name__)
    """
    settings = get_settings()
    logger = logging.getLogger(name or settings.service_name)

    if _in_package(logger.name) or logger.handlers:
        return logger

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(console_handler)
    # The console handler above already prints; don't repeat via root
    logger.propagate = False

    return logger
