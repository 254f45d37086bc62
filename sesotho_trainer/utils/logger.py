"""Logging setup shared by the application entry points."""

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(
    name: Optional[str] = "sesotho_trainer",
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """
    Configure and return a logger writing to stderr.

    Calling it again for the same name only updates the level.

    Args:
        name: Logger name (package root by default)
        level: Logging level or its name ("DEBUG", "INFO", ...)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_sesotho_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._sesotho_handler = True
        logger.addHandler(handler)

    return logger
