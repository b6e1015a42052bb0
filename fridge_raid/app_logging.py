"""Logging configuration helpers."""

import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Configure application logging with a single stream handler."""
    logger = logging.getLogger("fridge_raid")
    logger.setLevel(level.upper())
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
