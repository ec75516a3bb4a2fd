from __future__ import annotations

import logging
import logging.config
from typing import Any

from .settings import settings


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _logging_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
    }


def setup_logging(level: str | None = None) -> None:
    """Configure console logging for the gateway and the bundled services.

    Unknown level names fall back to INFO.
    """
    lvl = (level or settings.log_level).upper()
    if not isinstance(logging.getLevelName(lvl), int):
        lvl = "INFO"
    logging.config.dictConfig(_logging_config(lvl))
