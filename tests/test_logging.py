"""Tests for JSON log formatting."""

from __future__ import annotations

import json
import logging
import sys

from media_search.logging import JsonFormatter


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="media_search.search",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Search complete",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_keeps_known_fields_only() -> None:
    line = JsonFormatter("media-search").format(
        _record(query="dog", result_count=2, asset_type=None, password="hunter2")
    )

    payload = json.loads(line)
    assert payload["service"] == "media-search"
    assert payload["level"] == "INFO"
    assert payload["message"] == "Search complete"
    assert payload["query"] == "dog"
    assert payload["result_count"] == 2
    assert "asset_type" not in payload
    assert "password" not in payload
    assert payload["ts"].endswith("+00:00")


def test_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("backend down")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter("media-search").format(record))

    assert "backend down" in payload["exception"]
