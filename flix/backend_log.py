"""JSON-lines backend action log and the helpers used by the admin log viewer."""
from __future__ import annotations
import json
import logging
from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import Any

from django.conf import settings

backend_logger = logging.getLogger("flix.backend")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonLinesFormatter(logging.Formatter):
    """Render a record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=dt_timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "action": getattr(record, "action", record.getMessage()),
        }
        details = getattr(record, "details", None) or {}
        entry.update(details)
        return json.dumps(entry, default=str)


def log_backend_action(action: str, details: dict[str, Any] | None = None, level: str = "info") -> None:
    """Append an action entry to the backend log."""

    backend_logger.log(
        LEVELS.get(level, logging.INFO),
        action,
        extra={"action": action, "details": dict(details or {})},
    )


def read_backend_log(path: Path | str | None = None) -> list[dict[str, Any]]:
    """Return the log entries, keeping unparsable lines as ``{"raw": line}``.

    Raises ``OSError`` when the log file cannot be read.
    """

    log_path = Path(path or settings.BACKEND_LOG_FILE)
    content = log_path.read_text(encoding="utf-8").strip()
    entries: list[dict[str, Any]] = []
    if not content:
        return entries
    for line in content.split("\n"):
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            entries.append({"raw": line})
    return entries


def clear_logs(directory: Path | str | None = None) -> list[str]:
    """Delete every file in the logs directory and return the removed names."""

    logs_dir = Path(directory or settings.LOGS_DIR)
    removed: list[str] = []
    if not logs_dir.exists():
        return removed
    for entry in logs_dir.iterdir():
        if entry.is_file():
            entry.unlink()
            removed.append(entry.name)
    return removed
