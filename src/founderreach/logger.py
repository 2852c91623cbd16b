"""
Logging setup for founderreach.

Library modules only call logging.getLogger(__name__); scripts call
setup_logging() once at startup to attach handlers to the package logger.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from founderreach.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``founderreach`` logger.

    Args:
        level:    Logger level name; defaults to Settings.log_level.
        log_file: Path of the DEBUG-level log file; defaults to Settings.log_file.
                  Pass an empty string to log to the console only.

    Returns:
        The configured package logger.
    """
    settings = get_settings()
    level = level or settings.log_level
    log_file = settings.log_file if log_file is None else log_file

    logger = logging.getLogger("founderreach")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Calling twice (e.g. scheduler restarts) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
