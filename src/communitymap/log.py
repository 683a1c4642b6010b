"""
Logging configuration for CommunityMap.

Every entry point (CLI, API, ingestion) goes through `configure_logging` once,
so the locator, the backend client and the catalog loaders all write to the
same named logger with the same format.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOGGER_NAME = "communitymap"
LOG_FILENAME = "communitymap.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def _handler(handler: logging.Handler, level: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.setLevel(level)
    return handler


def configure_logging(log_dir: Path, level: str = "INFO") -> logging.Logger:
    """
    Attach a stderr handler and `<log_dir>/communitymap.log` to the package
    logger. Safe to call repeatedly (uvicorn --reload, per-scenario settings):
    handlers are attached once, later calls only adjust the level.
    """
    level = str(level).upper()
    logger = get_logger()
    logger.setLevel(level)
    # The root logger must not print a second copy.
    logger.propagate = False

    if not logger.handlers:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_handler(logging.StreamHandler(), level))
        logger.addHandler(_handler(logging.FileHandler(log_dir / LOG_FILENAME, encoding="utf-8"), level))
    else:
        for handler in logger.handlers:
            handler.setLevel(level)
    return logger
