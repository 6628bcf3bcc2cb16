"""
Logging configuration for the census quote service.
Call setup_logging() once when the application is created.
"""
from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

EXTRA_FIELDS = ("census_id", "file_id", "stage", "batch_index", "rows", "duration_ms")


class JSONFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        extras = " ".join(f"{key}={getattr(record, key)}" for key in EXTRA_FIELDS if hasattr(record, key))
        line = f"{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        if extras:
            line = f"{line} ({extras})"
        if record.exc_info and record.exc_info[0]:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Override log level (default: LOG_LEVEL env or INFO)
        json_logs: Force JSON lines (default: LOG_JSON env)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if json_logs is None:
        json_logs = os.environ.get("LOG_JSON", "").lower() in {"1", "true", "yes"}

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    root.addHandler(console)

    # matplotlib is chatty about font discovery at INFO
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
