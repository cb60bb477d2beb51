"""
core/logging.py -- Logging setup for the User Login API.

Two streams:
  application log  -- every "userapi.*" logger, to the console.
  access log       -- "userapi.access", one line per request:
                      [2024-01-01T00:00:00.000Z] GET /api/users 200 512 - 3.1 ms
                      written to ACCESS_LOG_PATH, and echoed to the console
                      outside production.
"""

from __future__ import annotations

import logging
from pathlib import Path

from core.config import Settings

_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

ACCESS_LOGGER = "userapi.access"


def configure_logging(settings: Settings) -> None:
    """Install handlers on the root and access loggers. Safe to call twice."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=_FORMAT,
        datefmt=_DATEFMT,
    )

    access = logging.getLogger(ACCESS_LOGGER)
    access.setLevel(logging.INFO)
    for handler in list(access.handlers):
        access.removeHandler(handler)
        handler.close()

    if settings.access_log_path:
        path = Path(settings.access_log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        access.addHandler(file_handler)

    # Access lines reach the console through the root handler only in development.
    access.propagate = not settings.is_production
