from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import os


PACKAGE = "taskrunner"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LEVEL_ENV = "TASKRUN_LOG_LEVEL"

_configured = False


def env_level(default: int = logging.INFO) -> int:
    """Level named by TASKRUN_LOG_LEVEL, or `default` if unset or unknown."""
    name = os.getenv(LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def _ensure_base_logger() -> None:
    global _configured
    if _configured:
        return
    logging.basicConfig(level=env_level(), format=LOG_FORMAT)
    _configured = True


def apply_env_level() -> None:
    """Re-read TASKRUN_LOG_LEVEL, e.g. after a .env file was loaded."""
    _ensure_base_logger()
    logging.getLogger().setLevel(env_level())


def add_log_file(log_file: Path, logger_name: str = PACKAGE) -> RotatingFileHandler:
    """Mirror `logger_name` (and its children) into a rotating file.

    Asking twice for the same file reuses the existing handler.
    """
    logger = logging.getLogger(logger_name)
    target = str(Path(log_file).resolve())
    for h in logger.handlers:
        if isinstance(h, RotatingFileHandler) and h.baseFilename == target:
            return h
    Path(target).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(target, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return handler


def get_logger(name: str, log_file: Path | None = None) -> logging.Logger:
    _ensure_base_logger()
    if log_file:
        add_log_file(log_file, name)
    return logging.getLogger(name)
