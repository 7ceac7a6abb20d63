"""Console logging setup for the epaper namespace"""

import logging

from rich.logging import RichHandler


LOGGER_NAME = "epaper"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single RichHandler to the epaper logger and return it."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(_level_from_string(level))
    logger.handlers = []
    logger.propagate = False

    handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
    handler.setLevel(_level_from_string(level))
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
