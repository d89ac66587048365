"""Logger utility: one "shopassist" logger shared by every module."""
import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

logger = logging.getLogger("shopassist")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(h)
    logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger(name: str = None):
    """Return the package logger, or a child of it (``shopassist.<name>``)."""
    return logger.getChild(name) if name else logger
