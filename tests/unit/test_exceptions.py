from rowcast.exceptions import (
    ConnectionClosedError,
    DecodeError,
    ExecutionCancelledError,
    ExecutionError,
    HookError,
    ParameterCountMismatchError,
    ParameterError,
    PermanentExecutionError,
    PlaceholderPreconditionError,
    PreconditionError,
    RowcastError,
    SchemaDecodeError,
    StatementPreconditionError,
    TransactionClosedError,
)


def test_exception_hierarchy() -> None:
    """Test exception classes inherit correctly."""
    assert issubclass(StatementPreconditionError, PreconditionError)
    assert issubclass(PlaceholderPreconditionError, PreconditionError)
    assert issubclass(ParameterError, PreconditionError)

    assert issubclass(ConnectionClosedError, PermanentExecutionError)
    assert issubclass(TransactionClosedError, PermanentExecutionError)
    assert issubclass(ParameterCountMismatchError, PermanentExecutionError)
    assert issubclass(PermanentExecutionError, ExecutionError)
    assert issubclass(ExecutionCancelledError, ExecutionError)

    assert issubclass(SchemaDecodeError, DecodeError)
    for exc_type in (PreconditionError, ExecutionError, DecodeError, HookError):
        assert issubclass(exc_type, RowcastError)


def test_exception_detail() -> None:
    """Test messages become the detail."""
    exc = ConnectionClosedError("connection is closed")
    assert str(exc) == "connection is closed"
    assert exc.detail == "connection is closed"
    assert repr(exc) == "ConnectionClosedError - connection is closed"


def test_statement_precondition_includes_sql() -> None:
    exc = StatementPreconditionError(sql="sel")
    assert exc.sql == "sel"
    assert "at least 6 characters" in str(exc)
    assert "'sel'" in str(exc)


def test_indexed_errors() -> None:
    """Test row indexes are kept as attributes and in the message."""
    schema_error = SchemaDecodeError("expected int", index=3)
    assert schema_error.index == 3
    assert str(schema_error) == "row 3: expected int"

    hook_error = HookError(5, "boom")
    assert hook_error.index == 5
    assert str(hook_error) == "after_fetch failed for row 5: boom"


def test_exception_chaining() -> None:
    """Test exceptions support chaining with 'from'."""
    try:
        try:
            raise ValueError("Original error")
        except ValueError as e:
            raise HookError(1, str(e)) from e
    except HookError as exc:
        assert isinstance(exc.__cause__, ValueError)
