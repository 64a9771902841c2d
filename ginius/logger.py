from __future__ import annotations

import logging
import sys
from typing import NoReturn


# NOTE: share uvicorn's error logger so app and server lines land in one stream.
LOGGER_NAME = "uvicorn.error"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger(LOGGER_NAME)


def configure(level: int | str = logging.INFO) -> logging.Logger:
    """Install a stderr handler on the shared logger (once) and set its level."""
    if not any(getattr(h, "_ginius", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ginius = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def fatal(msg: str, *args: object, code: int = 1) -> NoReturn:
    logger.critical(msg, *args)
    raise SystemExit(code)
