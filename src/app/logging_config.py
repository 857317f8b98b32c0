# src/app/logging_config.py
from __future__ import annotations

import logging
import logging.config

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "default",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"],
    },
    "loggers": {
        # Engine chatter stays quiet unless explicitly raised
        "sqlalchemy.engine": {
            "level": "WARNING",
        },
    },
}


def setup_logging(level: str | int = "INFO") -> None:
    config = dict(LOGGING)
    config["root"] = {**LOGGING["root"], "level": level}
    logging.config.dictConfig(config)
