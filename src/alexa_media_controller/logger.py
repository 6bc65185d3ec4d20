"""Process logger setup."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str, level: int | str = logging.INFO) -> logging.Logger:
    """Return the named logger with a single stderr handler attached.

    Calling this again for the same name only updates the level.

    Args:
        name: Logger name.
        level: Level as a number or a name such as "DEBUG".

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    return logger
