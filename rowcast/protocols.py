"""Runtime-checkable protocols for the database client boundary.

A client is mutation-capable, query-capable or both. The engine resolves the
capability it needs once per call with ``isinstance`` against these
protocols and refuses clients that offer neither before any I/O happens.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from rowcast.core.columns import ColumnDescriptor
    from rowcast.core.context import ExecutionContext

__all__ = (
    "AfterFetchHook",
    "AsyncCursor",
    "AsyncMutationClient",
    "AsyncQueryClient",
    "Cursor",
    "MutationClient",
    "QueryClient",
)


@runtime_checkable
class Cursor(Protocol):
    """Iterator over one result set, yielding raw column buffers."""

    def columns(self) -> "Sequence[ColumnDescriptor]":
        """Column descriptors of the result set."""
        ...

    def next(self) -> bool:
        """Advance to the next row; ``False`` once exhausted or on error."""
        ...

    def scan_row(self) -> "Sequence[Union[bytes, None]]":
        """Raw buffers of the current row, ``None`` for SQL NULL."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...

    def err(self) -> Optional[BaseException]:
        """Error that ended iteration early, if any."""
        ...


@runtime_checkable
class AsyncCursor(Protocol):
    """Async twin of :class:`Cursor`; ``columns`` and ``err`` stay synchronous."""

    def columns(self) -> "Sequence[ColumnDescriptor]": ...

    async def next(self) -> bool: ...

    async def scan_row(self) -> "Sequence[Union[bytes, None]]": ...

    async def close(self) -> None: ...

    def err(self) -> Optional[BaseException]: ...


@runtime_checkable
class MutationClient(Protocol):
    """Client able to run INSERT/UPDATE/DELETE statements."""

    def execute_mutation(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> Any:
        """Run ``sql`` and return the driver's result handle."""
        ...


@runtime_checkable
class QueryClient(Protocol):
    """Client able to run row-returning statements."""

    def execute_query(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> Cursor:
        """Run ``sql`` and return a cursor over its rows."""
        ...


@runtime_checkable
class AsyncMutationClient(Protocol):
    async def execute_mutation(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> Any: ...


@runtime_checkable
class AsyncQueryClient(Protocol):
    async def execute_query(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> AsyncCursor: ...


@runtime_checkable
class AfterFetchHook(Protocol):
    """Record shape with a post-materialization hook.

    ``after_fetch`` may mutate its own record and must not rely on any other
    record having been visited. Raising aborts the call.
    """

    def after_fetch(self, context: "ExecutionContext", index: int, total: int) -> Any: ...
