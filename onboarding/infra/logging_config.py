"""Process-wide logging setup shared by the API, commands and celery workers."""

from __future__ import annotations

import logging
import logging.config
from typing import Optional

from onboarding.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


class LoggingConfig:
    """Configure the root logger once; later instances are no-ops."""

    def __init__(self, log_level: Optional[str] = None) -> None:
        global _configured
        if _configured:
            return
        level = (log_level or get_settings().log_level or "INFO").upper()
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "default": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "formatter": "default",
                    },
                },
                "root": {"level": level, "handlers": ["console"]},
            }
        )
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the application."""
    return logging.getLogger(f"onboarding.{name}")
