"""
Logging setup.

Modules log through logging.getLogger(__name__); only entry points
(the CLI and run_server.py) call configure_logging.
"""
import logging
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the package logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("reputation")
    logger.setLevel(level)

    if not any(getattr(h, "_reputation", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._reputation = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger
