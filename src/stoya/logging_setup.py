"""Logging configuration shared by the CLI and long-running watch sessions."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.logging import RichHandler

from stoya.config.models import LoggingSettings

_NOISY_LOGGERS = ("httpx", "httpcore", "LiteLLM", "dspy")


def configure_logging(settings: LoggingSettings, *, verbose: bool = False) -> logging.Logger:
    """Install console and optional rotating-file handlers on the ``stoya`` logger.

    Args:
        settings: Logging section of the loaded configuration.
        verbose: Force DEBUG level regardless of ``settings.level``.

    Returns:
        logging.Logger: The configured package logger.
    """
    level = logging.DEBUG if verbose else logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING

    logger = logging.getLogger("stoya")
    logger.setLevel(level)
    logger.handlers.clear()
    logger.propagate = False

    console = RichHandler(show_path=False, rich_tracebacks=True)
    console.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console)

    if settings.file:
        path = Path(settings.file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=settings.max_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - [%(levelname)s] - %(message)s")
        )
        logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logger


__all__ = ["configure_logging"]
