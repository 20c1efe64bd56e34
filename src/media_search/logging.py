"""
One-line JSON logs for the CLI and the HTTP server.

Call sites attach structured fields through ``extra=``; only the names in
``LOG_FIELDS`` are copied into the emitted object.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

LOG_FIELDS = (
    "query",
    "asset_type",
    "top_k",
    "min_similarity",
    "semantic_count",
    "direct_count",
    "file_count",
    "result_count",
    "keyword_count",
    "written_count",
    "duration_ms",
    "error_message",
)


class JsonFormatter(logging.Formatter):
    """Render a record as a JSON object tagged with the emitting service."""

    def __init__(self, service: str) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (field, getattr(record, field))
            for field in LOG_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(service: str = "media-search") -> None:
    """Send every log record to stderr as JSON at ``LOG_LEVEL`` (default INFO)."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(service))

    root = logging.getLogger()
    root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
