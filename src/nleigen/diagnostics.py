"""Logging setup for command-line runs."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "nleigen"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or one of its children."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    if name == LOGGER_NAME or name.startswith(LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def configure_logging(
        level: Union[int, str] = logging.INFO,
        log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the package logger.

    Calling it again replaces the handlers installed by a previous call
    instead of stacking duplicates.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    for handler in list(logger.handlers):
        if getattr(handler, "_nleigen_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console._nleigen_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._nleigen_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.setLevel(level)
    return logger
