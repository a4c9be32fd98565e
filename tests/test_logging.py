"""Tests for the structured logging module."""

import json
import sys
from io import StringIO
from unittest.mock import patch

import pytest
import structlog

from sendertally.core.logging import configure_logging, get_logger, reorder_keys


def _json_buffer() -> StringIO:
    """A non-TTY buffer so configure_logging picks the JSON renderer."""
    buf = StringIO()
    buf.isatty = lambda: False  # type: ignore[attr-defined]
    return buf


def test_json_output():
    """In non-TTY mode, log output is valid JSON with required fields."""
    buf = _json_buffer()

    with patch.object(sys, "stderr", buf):
        configure_logging("info")
        log = structlog.get_logger()
        log.info("batch_completed", fetched_ok=100, fetched_failed=0)

    data = json.loads(buf.getvalue().strip())

    assert data["event"] == "batch_completed"
    assert data["level"] == "info"
    assert "timestamp" in data
    assert data["fetched_ok"] == 100
    assert data["fetched_failed"] == 0


def test_log_level_filtering():
    """DEBUG messages are hidden at INFO level; INFO messages appear."""
    buf = _json_buffer()

    with patch.object(sys, "stderr", buf):
        configure_logging("info")
        log = structlog.get_logger()
        log.debug("should_be_hidden")
        log.info("should_appear")

    lines = [line for line in buf.getvalue().splitlines() if line.strip()]

    assert len(lines) == 1
    data = json.loads(lines[0])
    assert data["event"] == "should_appear"


def test_unknown_level_falls_back_to_info():
    buf = _json_buffer()

    with patch.object(sys, "stderr", buf):
        configure_logging("verbose")
        log = structlog.get_logger()
        log.debug("hidden")
        log.info("shown")

    lines = [line for line in buf.getvalue().splitlines() if line.strip()]
    assert [json.loads(line)["event"] for line in lines] == ["shown"]


def test_error_logging_with_exception():
    """Exceptions are serialized as structured fields in JSON output."""
    buf = _json_buffer()

    with patch.object(sys, "stderr", buf):
        configure_logging("info")
        log = structlog.get_logger()
        try:
            raise ValueError("something went wrong")
        except ValueError:
            log.error("message_fetch_failed", exc_info=True)

    data = json.loads(buf.getvalue().strip())

    assert data["event"] == "message_fetch_failed"
    assert data["level"] == "error"
    output_str = json.dumps(data)
    assert "ValueError" in output_str
    assert "something went wrong" in output_str


def test_reorder_keys_processor():
    """reorder_keys places priority fields first and preserves all values."""
    event_dict = {
        "extra": "data",
        "level": "info",
        "event": "listing_complete",
        "timestamp": "2026-01-01T00:00:00Z",
        "component": "lister",
        "pages": 3,
    }
    result = reorder_keys(None, "info", event_dict)

    assert list(result.keys())[:4] == ["timestamp", "level", "component", "event"]
    assert result == event_dict


def test_reorder_keys_without_component():
    event_dict = {
        "extra": "data",
        "level": "warning",
        "event": "no_component",
        "timestamp": "2026-01-01T00:00:00Z",
    }
    result = reorder_keys(None, "warning", event_dict)

    assert list(result.keys())[:3] == ["timestamp", "level", "event"]
    assert result == event_dict


def test_json_field_order_with_component():
    """JSON output has fields in order: timestamp, level, component, event, ...rest."""
    buf = _json_buffer()

    with patch.object(sys, "stderr", buf):
        configure_logging("info")
        log = get_logger(component="scheduler")
        log.info("scheduler_started", total_ids=3)

    data = json.loads(buf.getvalue().strip())

    assert list(data.keys())[:4] == ["timestamp", "level", "component", "event"]
    assert data["component"] == "scheduler"
    assert data["total_ids"] == 3


def test_message_id_follows_event():
    """Per-message events put message_id right after event."""
    buf = _json_buffer()

    configure_logging("info", stream=buf)
    get_logger(component="scheduler").warning(
        "message_fetch_failed", error="boom", message_id="m42", status_code=404
    )

    data = json.loads(buf.getvalue().strip())
    assert list(data.keys())[:5] == ["timestamp", "level", "component", "event", "message_id"]


def test_json_format_forced_on_tty():
    buf = StringIO()
    buf.isatty = lambda: True  # type: ignore[attr-defined]

    configure_logging("info", "json", stream=buf)
    structlog.get_logger().info("forced_json")

    assert json.loads(buf.getvalue().strip())["event"] == "forced_json"


def test_console_format_forced_when_piped():
    buf = _json_buffer()

    configure_logging("info", "console", stream=buf)
    structlog.get_logger().info("console_line", pages=2)

    output = buf.getvalue()
    assert "console_line" in output
    assert "pages=2" in output
    assert "\033[" not in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output.strip())
