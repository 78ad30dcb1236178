"""Handlers for the `dirconn` logger.

Only the package logger is touched; the host application's root logger
and its handlers stay as they are. Records still propagate upwards.

A file handler is attached only when a log directory is given. It rolls
over at midnight (UTC) and keeps `retention_days` rotated files.
"""
from __future__ import annotations

import glob
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler

LOGGER_NAME = "dirconn"
LOG_FILE = "dirconn.log"
_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_installed: list[logging.Handler] = []


def _parse_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or "INFO").strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    level: str | int = "INFO",
    log_dir: str | None = None,
    retention_days: int = 30,
    console: bool = True,
) -> logging.Logger:
    """(Re)attach console/file handlers to the package logger and set its level."""
    logger = logging.getLogger(LOGGER_NAME)
    while _installed:
        h = _installed.pop()
        logger.removeHandler(h)
        h.close()

    log_level = _parse_level(level)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        retention_days = max(1, int(retention_days or 30))
        fh = TimedRotatingFileHandler(
            os.path.join(log_dir, LOG_FILE),
            when="midnight",
            backupCount=retention_days,
            encoding="utf-8",
            utc=True,
        )
        fh.suffix = "%Y-%m-%d"
        handlers.append(fh)
        prune_rotated_logs(log_dir, retention_days)

    for h in handlers:
        h.setLevel(log_level)
        h.setFormatter(formatter)
        logger.addHandler(h)
        _installed.append(h)
    logger.setLevel(log_level)

    # ldap3 debug output is very chatty; only let warnings through.
    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))
    return logger


def prune_rotated_logs(log_dir: str, retention_days: int) -> list[str]:
    """Delete rotated files older than retention_days; returns removed paths."""
    cutoff = time.time() - retention_days * 86400
    removed: list[str] = []
    for path in glob.glob(os.path.join(log_dir, LOG_FILE + ".*")):
        try:
            if os.path.getmtime(path) < cutoff:
                os.remove(path)
                removed.append(path)
        except OSError:
            continue
    return removed
