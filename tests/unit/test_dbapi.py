"""Tests for the PEP 249 client adapter."""

import datetime
from decimal import Decimal
from typing import Any

import pytest

from rowcast import ExecutionConfig, execute
from rowcast.adapters.dbapi import DBAPIClient, MutationResult, describe_columns, encode_value
from rowcast.core.columns import UINT8, ColumnDescriptor
from rowcast.core.context import ExecutionContext
from rowcast.exceptions import ConnectionClosedError, ExecutionCancelledError, ParameterCountMismatchError


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        (b"raw", b"raw"),
        (memoryview(b"mv"), b"mv"),
        (True, b"1"),
        (False, b"0"),
        (42, b"42"),
        (1.5, b"1.5"),
        (Decimal("9.99"), b"9.99"),
        ("text", b"text"),
        (datetime.datetime(2024, 1, 2, 3, 4, 5), b"2024-01-02 03:04:05"),
        (datetime.date(2024, 1, 2), b"2024-01-02"),
        (datetime.time(3, 4, 5), b"03:04:05"),
        ({"a": 1}, b'{"a":1}'),
        ([1, 2], b"[1,2]"),
    ],
)
def test_encode_value(value: Any, expected: "bytes | None") -> None:
    """Test fetched Python values are rendered as the text the decoder parses."""
    assert encode_value(value) == expected


def test_describe_columns() -> None:
    """Test description tuples keep the driver's tri-state nullability."""
    description = [
        ("id", "BIGINT", None, None, None, None, False),
        ("name", "VARCHAR", None, None, None, None, True),
        ("total", 23, None, None, None, None, None),
    ]

    columns = describe_columns(description, scan_type_resolver=lambda code: UINT8 if code == "BIGINT" else None)

    assert columns == [
        ColumnDescriptor("id", "BIGINT", nullable=False, scan_type=UINT8),
        ColumnDescriptor("name", "VARCHAR", nullable=True),
        ColumnDescriptor("total", "", nullable=None),
    ]
    assert describe_columns(None) == []


def test_type_name_resolver() -> None:
    columns = describe_columns([("n", 23, None, None, None, None, None)], {23: "INT4"}.get)
    assert columns[0].type_name == "INT4"


class StubCursor:
    """Minimal DB-API cursor."""

    def __init__(self, connection: "StubConnection") -> None:
        self.connection = connection
        self.description: "list[tuple[Any, ...]] | None" = None
        self.rowcount = -1
        self.lastrowid: "int | None" = None
        self._rows: "list[tuple[Any, ...]]" = []
        self.closed = False

    def execute(self, sql: str, params: "tuple[Any, ...]") -> None:
        self.connection.executed.append((sql, params))
        if self.connection.execute_error is not None:
            raise self.connection.execute_error
        if sql.startswith("SELECT"):
            self.description = self.connection.description
            self._rows = list(self.connection.rows)
        else:
            self.rowcount = len(params)
            self.lastrowid = 99

    def fetchone(self) -> "tuple[Any, ...] | None":
        if self.connection.fetch_error is not None:
            raise self.connection.fetch_error
        return self._rows.pop(0) if self._rows else None

    def close(self) -> None:
        self.closed = True
        self.connection.closed_cursors += 1


class StubConnection:
    def __init__(self) -> None:
        self.description = [
            ("id", "INTEGER", None, None, None, None, False),
            ("score", "DOUBLE", None, None, None, None, True),
            ("meta", "JSON", None, None, None, None, True),
        ]
        self.rows: "list[tuple[Any, ...]]" = [(1, 2.5, {"k": "v"}), (2, None, None)]
        self.executed: "list[tuple[str, tuple[Any, ...]]]" = []
        self.execute_error: "Exception | None" = None
        self.fetch_error: "Exception | None" = None
        self.closed_cursors = 0

    def cursor(self) -> StubCursor:
        return StubCursor(self)


class TestDBAPIClient:
    """Test the client against a stub connection."""

    def test_query_round_trip(self) -> None:
        connection = StubConnection()

        rows = execute(None, DBAPIClient(connection), "SELECT id, score, meta FROM t WHERE id IN (?)", [1, 2])

        assert rows == [{"id": 1, "score": 2.5, "meta": {"k": "v"}}, {"id": 2, "score": None, "meta": None}]
        assert connection.executed == [("SELECT id, score, meta FROM t WHERE id IN (?)", (1, 2))]
        assert connection.closed_cursors == 1

    def test_mutation_result(self) -> None:
        connection = StubConnection()

        result = execute(None, DBAPIClient(connection), "INSERT INTO t VALUES (?, ?)", 1, "a")

        assert result == MutationResult(rows_affected=2, last_insert_id=99)
        assert connection.closed_cursors == 1

    def test_parameter_count_errors_are_permanent(self) -> None:
        connection = StubConnection()
        connection.execute_error = RuntimeError("Incorrect number of bindings supplied. uses 2, and there are 1")

        with pytest.raises(ParameterCountMismatchError) as exc_info:
            execute(None, DBAPIClient(connection), "INSERT INTO t VALUES (?, ?)", 1)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert connection.closed_cursors == 1

    def test_closed_connection(self) -> None:
        connection = StubConnection()
        connection.execute_error = RuntimeError("Cannot operate on a closed database.")

        with pytest.raises(ConnectionClosedError):
            execute(None, DBAPIClient(connection), "SELECT id FROM t")

        assert connection.closed_cursors == 1

    def test_other_errors_propagate_unchanged(self) -> None:
        connection = StubConnection()
        connection.execute_error = TimeoutError("lock wait timeout")

        with pytest.raises(TimeoutError):
            execute(None, DBAPIClient(connection), "SELECT id FROM t")

    def test_fetch_error_is_reported_through_err(self) -> None:
        connection = StubConnection()
        connection.fetch_error = OSError("server has gone away")

        with pytest.raises(OSError, match="gone away"):
            execute(None, DBAPIClient(connection), "SELECT id FROM t")

        assert connection.closed_cursors == 1

    def test_raw_mode_returns_rendered_bytes(self) -> None:
        rows = execute(None, DBAPIClient(StubConnection()), "SELECT id FROM t", config=ExecutionConfig(raw=True))
        assert rows[0] == {"id": b"1", "score": b"2.5", "meta": b'{"k":"v"}'}

    def test_cancelled_context_skips_driver(self) -> None:
        connection = StubConnection()
        context = ExecutionContext()
        context.cancel()

        with pytest.raises(ExecutionCancelledError):
            DBAPIClient(connection).execute_query(context, "SELECT id FROM t", ())

        assert connection.executed == []
