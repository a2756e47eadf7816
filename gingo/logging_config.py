"""
Logging configuration for the Gingo service.

Monitoring systems poll /health and /metrics constantly; those access
log lines are dropped so controller activity stays readable.
"""

import logging
import logging.config
import os
from typing import Any, Dict, Iterable, Optional

QUIET_PATHS = ("/health", "/metrics")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PollingRequestFilter(logging.Filter):
    """Filter out GET requests to polled endpoints from uvicorn access logs."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True
        message = record.getMessage()
        if "GET" not in message:
            return True
        return not any(f"{path} " in message or f"{path}?" in message for path in self.paths)


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the dictConfig for the service and uvicorn.

    Args:
        level: Level for the ``gingo`` loggers (defaults to LOG_LEVEL, then INFO)
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "polling_filter": {"()": PollingRequestFilter},
        },
        "formatters": {
            "default": {"format": LOG_FORMAT},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["polling_filter"],
            },
        },
        "loggers": {
            "uvicorn": _logger("default", "INFO"),
            "uvicorn.error": _logger("default", "INFO"),
            "uvicorn.access": _logger("access", "INFO"),
            "httpx": _logger("default", "WARNING"),
            "gingo": _logger("default", level),
        },
        "root": {"level": "INFO", "handlers": ["default"]},
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the logging configuration to the running process."""
    logging.config.dictConfig(get_logging_config(level))
