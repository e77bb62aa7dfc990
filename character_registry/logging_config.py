"""Logging setup for the registry service.

Console output always goes to stdout; a tail/rotate friendly file handler is
added when ``LOG_FILE_PATH`` is set. ``LOG_LEVEL`` controls the root level.
"""

import os
import logging
import logging.config
from pathlib import Path
from typing import Dict, Any

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Loggers whose level follows the root level
_ALIGNED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")

_configured = False  # idempotency guard


def _build_dict_config(
    log_file: str | None, level: str, fmt: str = DEFAULT_FORMAT
) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "std",
        }
    }
    root_handlers = ["console"]

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": log_file,
            "formatter": "std",
        }
        root_handlers.append("file")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"std": {"format": fmt}},
        "handlers": handlers,
        "root": {"level": level, "handlers": root_handlers},
    }


def configure_logging() -> None:
    """Configure logging from LOG_LEVEL / LOG_FILE_PATH / LOG_FORMAT.

    Idempotent: safe to call on every import of the app module.
    """
    global _configured
    if _configured:
        return

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_file = os.getenv("LOG_FILE_PATH") or None
    fmt = os.getenv("LOG_FORMAT") or DEFAULT_FORMAT

    logging.config.dictConfig(_build_dict_config(log_file, level, fmt))

    for name in _ALIGNED_LOGGERS:
        logging.getLogger(name).setLevel(level)

    # httpx logs every request at INFO; only surface that when debugging
    if level != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
