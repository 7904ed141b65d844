"""
Logging setup for subnetctl
Everything goes through one rich handler on stderr
"""

import logging
from logging.config import dictConfig

from rich.console import Console
from rich.logging import RichHandler


def _stderr_handler(**kwargs):
    return RichHandler(console=Console(stderr=True), **kwargs)


def setup_logging(level: str = "WARNING") -> None:
    level = (level or "WARNING").upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "WARNING"

    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(name)s | %(message)s", "datefmt": "[%X]"}
        },
        "handlers": {
            "console": {
                "()": _stderr_handler,
                "formatter": "default",
                "level": level,
                "show_path": False,
            }
        },
        "root": {"handlers": ["console"], "level": level},
    })
