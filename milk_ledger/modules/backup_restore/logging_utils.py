"""
modules/backup_restore/logging_utils.py

Purpose
-------
Structured JSON-lines logging for backup exports.

Public API
----------
- get_logger(file_path=None) -> logging.Logger
- log_event(logger, op, phase, message, extra: dict = {})
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ...config import LOG_LEVEL

__all__ = ["get_logger", "log_event"]

_LOGGER_NAME = "milk_ledger.backup"


def get_logger(file_path: Optional[str] = None, level: int = LOG_LEVEL) -> logging.Logger:
    """
    Return the backup logger. Lines go to stderr; when `file_path` is given
    they are also appended to that file. Each handler (stderr, and one per
    log file) is attached once, however often this is called.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(_JsonLineFormatter())
        logger.addHandler(sh)

    if file_path:
        log_file = Path(file_path)
        target = os.path.abspath(str(log_file))
        if any(
            isinstance(h, logging.FileHandler) and h.baseFilename == target
            for h in logger.handlers
        ):
            return logger
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
        except OSError as e:
            logger.warning("Backup log file %s unavailable, using stderr only: %s", log_file, e)
        else:
            fh.setFormatter(_JsonLineFormatter())
            logger.addHandler(fh)

    return logger


class _JsonLineFormatter(logging.Formatter):
    """
    One JSON object per line:
      {"ts":"2023-10-31T12:00:01.123Z","level":"INFO","name":"milk_ledger.backup","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload = {
            "ts": ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=str)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line.

    Args:
        logger: Obtained from get_logger().
        op: Operation name, e.g. "backup".
        phase: Phase within the operation, e.g. "snapshot", "write", "done".
        message: Human-readable short message.
        extra: Optional additional key/values (paths, row counts).
        level: Logging level (default INFO).
    """
    extra_payload = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v

    logger.log(level, message, extra={"extra_payload": extra_payload})
