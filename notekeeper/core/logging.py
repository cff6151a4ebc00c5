"""
Logging Configuration

One stdout handler for the whole ``notekeeper`` logger tree. Processor,
dispatcher and classifier records carry the note id in the message, so a
single ``grep <note-id>`` follows a note from upload event to index write.
"""

import sys
from logging.config import dictConfig
from typing import Any, Final

from notekeeper.core.config import settings

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Libraries held at a fixed level whatever LOG_LEVEL says
LIBRARY_LEVELS: Final[dict[str, str]] = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "sqlalchemy.engine": "WARNING",  # INFO echoes every statement
    "httpx": "WARNING",  # one line per embedding request otherwise
    "openai": "WARNING",
}


def _console_logger(level: str) -> dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def build_logging_config(level: str | None = None) -> dict[str, Any]:
    """
    dictConfig mapping for the service and its scripts.

    Args:
        level: Level for ``notekeeper.*`` loggers; defaults to ``LOG_LEVEL``.
    """
    app_level = (level or settings.LOG_LEVEL).upper()

    loggers = {name: _console_logger(lvl) for name, lvl in LIBRARY_LEVELS.items()}
    loggers["notekeeper"] = _console_logger(app_level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
        },
        "root": {"level": app_level, "handlers": ["console"]},
        "loggers": loggers,
    }


def setup_logging(level: str | None = None) -> None:
    """
    Apply the logging config.

    Note:
        Call once, before the app object or the script's work starts.
    """
    dictConfig(build_logging_config(level))
