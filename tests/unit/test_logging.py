"""Tests for logging helpers and JSON helpers."""

import logging

import msgspec
import pytest

from rowcast import ExecutionConfig, constant_backoff, execute
from rowcast.core.context import ExecutionContext
from rowcast.core.retry import run_with_retry
from rowcast.exceptions import SerializationError
from rowcast.utils.logging import StructuredFormatter, get_logger, log_event
from rowcast.utils.serializers import from_json, to_json
from tests.fakes import FakeClient, FakeCursor, user_columns, user_rows


def _events(caplog: pytest.LogCaptureFixture, event: str) -> "list[dict]":
    fields = [getattr(record, "extra_fields", {}) for record in caplog.records]
    return [entry for entry in fields if entry.get("event") == event]


def test_get_logger_namespaces_names() -> None:
    """Test loggers live under the rowcast namespace."""
    assert get_logger("driver").name == "rowcast.driver"
    assert get_logger("rowcast.core").name == "rowcast.core"
    assert get_logger().name == "rowcast"


def test_log_event_attaches_fields(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="rowcast")

    log_event(get_logger("test"), "dispatch", "Dispatching %s", "query", operation="query", arguments=2)

    (record,) = caplog.records
    assert record.getMessage() == "Dispatching query"
    assert record.extra_fields == {"event": "dispatch", "operation": "query", "arguments": 2}
    assert record.funcName == "test_log_event_attaches_fields"


def test_log_event_skips_disabled_level(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="rowcast")

    log_event(get_logger("test"), "dispatch", "Dispatching %s", "query")

    assert caplog.records == []


def test_structured_formatter_inlines_event_fields() -> None:
    record = logging.LogRecord("rowcast.test", logging.DEBUG, __file__, 10, "hello %s", ("world",), None)
    record.extra_fields = {"event": "retry", "attempt": 2, "delay": 0.5}

    entry = from_json(StructuredFormatter().format(record))

    assert entry["message"] == "hello world"
    assert entry["level"] == "DEBUG"
    assert entry["logger"] == "rowcast.test"
    assert (entry["event"], entry["attempt"], entry["delay"]) == ("retry", 2, 0.5)


def test_plain_record_has_no_event() -> None:
    record = logging.LogRecord("other", logging.INFO, __file__, 1, "plain", (), None)
    assert "event" not in from_json(StructuredFormatter().format(record))


def test_retry_breadcrumbs_carry_attempt(caplog: pytest.LogCaptureFixture) -> None:
    """Test each retried failure is logged with its attempt number and error type."""
    caplog.set_level(logging.DEBUG, logger="rowcast")
    calls = []

    def attempt() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise TimeoutError("slow")
        return "ok"

    assert run_with_retry(attempt, context=ExecutionContext(), policy=constant_backoff(0.0)) == "ok"

    events = _events(caplog, "retry")
    assert [event["attempt"] for event in events] == [1, 2]
    assert {event["error"] for event in events} == {"TimeoutError"}


def test_dispatch_breadcrumb_carries_operation(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="rowcast")

    execute(None, FakeClient(FakeCursor(user_columns(), user_rows(1))), "SELECT * FROM users WHERE id = ?", 1)
    execute(None, FakeClient(result=1), "UPDATE users SET name = ?", "x", config=ExecutionConfig())

    events = _events(caplog, "dispatch")
    assert [(event["operation"], event["arguments"]) for event in events] == [("query", 1), ("mutation", 1)]


def test_json_helpers() -> None:
    assert to_json({"a": [1, None]}) == '{"a":[1,null]}'
    assert to_json([1], as_bytes=True) == b"[1]"
    assert from_json(b'{"x": true}') == {"x": True}

    with pytest.raises(SerializationError):
        to_json(object())
    with pytest.raises(msgspec.DecodeError):
        from_json("{nope")
