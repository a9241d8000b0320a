"""Console and rotating-file logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from doccatalog.config.models import LoggingSettings

LOG_FILENAME = "doccatalog.log"

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_HANDLER_MARKER = "_doccatalog_handler"


def configure_logging(
    settings: LoggingSettings,
    *,
    level_override: Optional[str] = None,
) -> Optional[Path]:
    """Install console and rotating file handlers on the package logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging section of the configuration.
        level_override: Level name taking precedence over ``settings.level``.

    Returns:
        Optional[Path]: Path of the log file, or ``None`` when the log directory
        could not be created.
    """
    level_name = (level_override or settings.level).upper()
    level = getattr(logging, level_name, logging.WARNING)

    logger = logging.getLogger("doccatalog")
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)

    console = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    console.setLevel(level)
    setattr(console, _HANDLER_MARKER, True)
    logger.addHandler(console)

    log_dir = Path(settings.directory).expanduser()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Could not create log directory %s: %s", log_dir, exc)
        return None

    log_path = log_dir / LOG_FILENAME
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    setattr(file_handler, _HANDLER_MARKER, True)
    logger.addHandler(file_handler)
    return log_path


__all__ = ["configure_logging", "LOG_FILENAME"]
