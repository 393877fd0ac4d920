"""
Logging configuration using Uvicorn's logger format.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(levelprefix)s %(asctime)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Uvicorn-style logging format with colors, shared by the API and the editor
LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
            "use_colors": True,
        },
        "access": {
            "()": "uvicorn.logging.AccessFormatter",
            "fmt": '%(levelprefix)s %(asctime)s [%(name)s] %(client_addr)s - "%(request_line)s" %(status_code)s',
            "datefmt": DATE_FORMAT,
            "use_colors": True,
        },
    },
    "handlers": {
        "default": {
            "formatter": "default",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
        "access": {
            "formatter": "access",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "photomask": {"handlers": ["default"], "level": "INFO", "propagate": False},
        "uvicorn": {"handlers": ["default"], "level": "INFO"},
        "uvicorn.error": {"level": "INFO"},
        "uvicorn.access": {"handlers": ["access"], "level": "INFO", "propagate": False},
    },
}


def setup_logging(level: int = logging.INFO) -> None:
    """
    Setup logging configuration using Uvicorn's format.

    Args:
        level: Logging level (default: INFO)
    """
    from logging.config import dictConfig

    level_name = logging.getLevelName(level)
    for name in ("photomask", "uvicorn", "uvicorn.error"):
        LOGGING_CONFIG["loggers"][name]["level"] = level_name

    dictConfig(LOGGING_CONFIG)

    logging.root.setLevel(level)


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a configured logger instance using Uvicorn's formatter.

    Loggers under the ``photomask`` namespace inherit the package handler once
    ``setup_logging`` has run; anything else gets its own stdout handler.

    Args:
        name: Logger name (typically __name__ of the module)
        level: Optional logging level override

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    in_package = name == "photomask" or name.startswith("photomask.")
    if not in_package and not logger.handlers and name not in LOGGING_CONFIG["loggers"]:
        from uvicorn.logging import DefaultFormatter

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            DefaultFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT, use_colors=True)
        )
        logger.addHandler(handler)

    if level is not None:
        logger.setLevel(level)

    return logger
