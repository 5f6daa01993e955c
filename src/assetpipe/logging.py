"""Logger setup for builds.

Every module gets its logger from `get_logger`, which configures the root
handler once. Verbosity comes from `ASSETPIPE_LOG_LEVEL` and can be
overridden per invocation with `--log-level` (`set_level`). Each pipeline run
also attaches a rotating `pipeline.log` next to its `state.json`, detached
again when the run ends so consecutive runs never write into each other's
files.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
ROOT_LOGGER = "assetpipe"

_configured = False


def _parse_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _ensure_base_logger() -> None:
    global _configured
    if _configured:
        return
    level = os.getenv("ASSETPIPE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
    _configured = True


def set_level(level: str) -> None:
    """Set the verbosity of every `assetpipe.*` logger, e.g. "DEBUG"."""
    _ensure_base_logger()
    logging.getLogger(ROOT_LOGGER).setLevel(_parse_level(level))


def get_logger(name: str, log_file: Path | None = None) -> logging.Logger:
    _ensure_base_logger()
    logger = logging.getLogger(name)
    # one run log per pipeline logger at a time
    if log_file and not any(
        isinstance(h, RotatingFileHandler) for h in logger.handlers
    ):
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger


def detach_file_handlers(logger: logging.Logger) -> None:
    """Close and remove rotating file handlers added by `get_logger`."""
    for h in list(logger.handlers):
        if isinstance(h, RotatingFileHandler):
            logger.removeHandler(h)
            h.close()
