from typing import Any, Optional

__all__ = (
    "ConnectionClosedError",
    "DecodeError",
    "ExecutionCancelledError",
    "ExecutionError",
    "HookError",
    "ImproperConfigurationError",
    "ParameterCountMismatchError",
    "ParameterError",
    "PermanentExecutionError",
    "PlaceholderPreconditionError",
    "PreconditionError",
    "RowcastError",
    "SchemaDecodeError",
    "SerializationError",
    "StatementPreconditionError",
    "TransactionClosedError",
)


class RowcastError(Exception):
    """Base exception class from which all rowcast exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``RowcastError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(RowcastError):
    """Improper Configuration error.

    Raised before any I/O when a client or schema type cannot be used for the requested operation.
    """


# -- Precondition Errors --
class PreconditionError(RowcastError):
    """A caller supplied input that the engine refuses to process."""


class StatementPreconditionError(PreconditionError):
    """The statement is too short or empty to be classified."""

    sql: Optional[str]

    def __init__(self, message: Optional[str] = None, sql: Optional[str] = None) -> None:
        if message is None:
            message = "Statement must contain at least 6 characters after trimming."
        detail_message = message
        if sql is not None:
            detail_message = f"{message}\nSQL: {sql!r}"
        super().__init__(detail=detail_message)
        self.sql = sql


class PlaceholderPreconditionError(PreconditionError):
    """Placeholder generation was asked for zero columns or zero rows."""


# -- Parameter Errors --
class ParameterError(PreconditionError):
    """A statement argument cannot be turned into positional parameters."""


# -- Execution Errors --
class ExecutionError(RowcastError):
    """Base class for errors raised while executing a statement."""


class PermanentExecutionError(ExecutionError):
    """An execution error that retrying can never fix."""


class ConnectionClosedError(PermanentExecutionError):
    """The connection was closed before or during execution."""


class TransactionClosedError(PermanentExecutionError):
    """The transaction has already been committed or rolled back."""


class ParameterCountMismatchError(PermanentExecutionError):
    """The number of supplied arguments does not match the statement placeholders."""


class ExecutionCancelledError(ExecutionError):
    """The execution context was cancelled or its deadline passed."""


# -- Decode Errors --
class DecodeError(RowcastError):
    """Raw column data could not be materialized."""


class SchemaDecodeError(DecodeError):
    """The structural decoder rejected a row."""

    index: Optional[int]

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        detail_message = message
        if index is not None:
            detail_message = f"row {index}: {message}"
        super().__init__(detail=detail_message)
        self.index = index


class HookError(RowcastError):
    """A post-materialization hook failed for one row."""

    index: int

    def __init__(self, index: int, message: Optional[str] = None) -> None:
        detail_message = f"after_fetch failed for row {index}"
        if message:
            detail_message = f"{detail_message}: {message}"
        super().__init__(detail=detail_message)
        self.index = index


class SerializationError(RowcastError):
    """Encoding or decoding of an object failed."""
