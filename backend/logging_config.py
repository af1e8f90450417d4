"""Logging configuration helpers for the backend service."""

from __future__ import annotations

import logging
import os
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    """Route the service, auth and uvicorn loggers through one console handler.

    ``AUTH_LOG_LEVEL`` overrides ``level`` for ``backend.auth`` so session
    transitions can be traced without raising the level everywhere.
    """
    log_level = level.upper()
    auth_level = os.getenv("AUTH_LOG_LEVEL", log_level).upper()
    access_level = os.getenv("UVICORN_ACCESS_LOG_LEVEL", "INFO").upper()

    def _routed(logger_level: str) -> dict:
        return {"handlers": ["console"], "level": logger_level, "propagate": False}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                },
            },
            "root": {"handlers": ["console"], "level": log_level},
            "loggers": {
                "backend.auth": {"level": auth_level},
                "uvicorn": _routed(log_level),
                "uvicorn.error": _routed(log_level),
                "uvicorn.access": _routed(access_level),
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s (auth %s)", log_level, auth_level)
