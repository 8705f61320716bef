from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fieldjobs.core.settings import Settings

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_MARKER = "_fieldjobs_handler"


def setup_logging(settings: Settings) -> None:
    """Attach console (and optional rotating file) handlers to the package logger.

    Safe to call more than once; handlers are only installed the first time.
    """

    level = getattr(logging, settings.log_level, logging.INFO)
    logger = logging.getLogger("fieldjobs")
    logger.setLevel(level)

    if any(getattr(handler, _MARKER, False) for handler in logger.handlers):
        return

    formatter = logging.Formatter(_FORMAT, _DATEFMT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    setattr(console, _MARKER, True)
    logger.addHandler(console)

    if settings.log_file:
        path = Path(settings.log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        # rotate at 5MB, keep 7 backups
        file_handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=7, encoding="utf-8")
        file_handler.setFormatter(formatter)
        setattr(file_handler, _MARKER, True)
        logger.addHandler(file_handler)

    logger.info("Logging initialised at %s", settings.log_level)
