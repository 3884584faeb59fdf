"""Logging setup for PrepTick."""

from __future__ import annotations

import logging
from pathlib import Path

from .settings import APP_SUPPORT_DIR

LOG_DIR = APP_SUPPORT_DIR / "logs"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | None = "preptick.log",
    console: bool = True,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Configure and return the ``preptick`` package logger.

    Safe to call more than once; handlers are only attached the first time.
    """
    logger = logging.getLogger("preptick")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        if log_file:
            directory = log_dir or LOG_DIR
            directory.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(directory / log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        if console:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

    return logger
