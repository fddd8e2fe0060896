# src/logging/logger.py — v1
"""Logger factory with JSON and text formatters.

Both formatters stamp each line with the sync context of the task that logged
it, flattened into `session_id`, `operation` and `stage`. Records may also
carry sync extras via `extra=`:

    logger.info("Stored snapshot", extra={"digest": d, "location_uri": uri})

`digest` is shortened to its first 16 hex characters, which is also how
object keys name it.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from repairsync.logging.context import get_context

ROOT_LOGGER = "repairsync"

SYNC_EXTRAS = ("digest", "location_uri", "outcome")
DIGEST_SHOWN = 16


def _sync_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for name in SYNC_EXTRAS:
        value = getattr(record, name, None)
        if value is None:
            continue
        if name == "digest":
            value = str(value)[:DIGEST_SHOWN]
        extras[name] = value
    return extras


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, sync context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": _record_time(record).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            **get_context().as_dict(),
            **_sync_extras(record),
            "msg": record.getMessage(),
        }
        data = getattr(record, "data", None)
        if data:
            line["data"] = data
        if record.exc_info and record.exc_info[1] is not None:
            line["error_type"] = type(record.exc_info[1]).__name__
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Compact console lines: `12:00:01.250 WARN  s139 sync_stage/diagnostics  msg`."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        where = f"s{ctx.session_id}" if ctx.session_id is not None else "-"
        what = ctx.operation or record.name.rsplit(".", 1)[-1]
        if ctx.stage:
            what = f"{what}/{ctx.stage}"
        line = (
            f"{_record_time(record).strftime('%H:%M:%S.%f')[:-3]} "
            f"{record.levelname[:5]:<5} {where} {what}  {record.getMessage()}"
        )
        extras = _sync_extras(record)
        if extras:
            line += "  " + " ".join(f"{k}={v}" for k, v in extras.items())
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str) -> logging.Logger:
    """Get a named logger under the repairsync root."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the repairsync root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = stdout only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
    """
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Re-init must not stack handlers
    root_logger.handlers.clear()

    formatter: logging.Formatter
    if log_format == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from repairsync.logging.handlers import create_rotating_handler

        file_handler = create_rotating_handler(
            log_file, rotation=rotation, retention=retention
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

