"""
Logging setup for the storefront service.

All modules log under the ``storefront`` namespace; the level comes from
``LOG_LEVEL`` (default INFO) unless ``setup_logging`` is given one.
"""
import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "storefront"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(ROOT_LOGGER_NAME)


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a stdout handler to the ``storefront`` logger (once) and set its level.

    Safe to call repeatedly; later calls only adjust the level.
    """
    resolved = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logger.setLevel(resolved)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(console_handler)

    for handler in logger.handlers:
        handler.setLevel(resolved)

    # Keep uvicorn's root handlers from printing every line twice
    logger.propagate = False
    return logger


setup_logging()


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional dotted suffix, e.g. ``"cart.service"`` -> ``storefront.cart.service``
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logger
