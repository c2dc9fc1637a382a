"""Execution steps shared by the synchronous and asynchronous engines.

Both engines classify the statement, check the client's capability, decode
and materialize rows, and unwrap single results the same way; only the
I/O and the concurrent fan-out differ.
"""

import inspect
import os
from typing import TYPE_CHECKING, Any, Final, Optional

from rowcast.core.config import ExecutionConfig
from rowcast.core.context import ExecutionContext
from rowcast.core.decoder import RowDecoder
from rowcast.core.statement import OperationType, Statement
from rowcast.exceptions import HookError, ImproperConfigurationError
from rowcast.utils.logging import get_logger, log_event
from rowcast.utils.schema import to_schema_list
from rowcast.utils.type_guards import has_after_fetch

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rowcast.core.columns import ColumnDescriptor
    from rowcast.typing import DictRow

__all__ = (
    "DEFAULT_EXECUTION_CONFIG",
    "available_workers",
    "build_row_decoder",
    "ensure_capability",
    "hook_error",
    "materialize",
    "prepare_call",
    "runs_concurrently",
    "unwrap_result",
    "wants_after_fetch",
)

logger = get_logger("driver")

DEFAULT_EXECUTION_CONFIG: Final = ExecutionConfig()


def prepare_call(
    context: Optional[ExecutionContext], sql: str, args: "tuple[Any, ...]", config: Optional[ExecutionConfig]
) -> "tuple[ExecutionContext, Statement, ExecutionConfig]":
    """Resolve defaults and classify the statement before any I/O."""
    statement = Statement(sql, *args)
    log_event(
        logger,
        "dispatch",
        "Dispatching %s statement with %d arguments",
        statement.operation.value,
        len(statement.args),
        operation=statement.operation.value,
        arguments=len(statement.args),
    )
    return context or ExecutionContext(), statement, config or DEFAULT_EXECUTION_CONFIG


def ensure_capability(
    client: Any, statement: Statement, mutation_protocol: type, query_protocol: type, *, asynchronous: bool = False
) -> None:
    """Check that ``client`` can run ``statement``'s execution path.

    The method the path calls must be a coroutine function for the async
    engine and a plain function for the sync engine.

    Raises:
        ImproperConfigurationError: If the client offers neither capability, not the one needed,
            or offers it in the wrong calling convention.
    """
    can_mutate = isinstance(client, mutation_protocol)
    can_query = isinstance(client, query_protocol)
    if not can_mutate and not can_query:
        msg = f"{type(client).__name__} implements neither execute_mutation nor execute_query"
        raise ImproperConfigurationError(msg)
    if statement.operation is OperationType.MUTATION and not can_mutate:
        msg = f"{type(client).__name__} cannot execute mutation statements"
        raise ImproperConfigurationError(msg)
    if statement.operation is OperationType.QUERY and not can_query:
        msg = f"{type(client).__name__} cannot execute query statements"
        raise ImproperConfigurationError(msg)

    method_name = "execute_mutation" if statement.operation is OperationType.MUTATION else "execute_query"
    if inspect.iscoroutinefunction(getattr(client, method_name)) is not asynchronous:
        expected = "a coroutine function" if asynchronous else "a plain function"
        engine = "execute_async" if asynchronous else "execute"
        msg = f"{type(client).__name__}.{method_name} must be {expected} to be used with {engine}"
        raise ImproperConfigurationError(msg)


def build_row_decoder(columns: "Sequence[ColumnDescriptor]", config: ExecutionConfig) -> RowDecoder:
    return RowDecoder(columns, raw=config.raw and not config.structural, structural=config.structural)


def materialize(rows: "list[DictRow]", config: ExecutionConfig) -> "list[Any]":
    """Hand decoded rows to the structural decoder when a record shape is configured."""
    if config.schema_type is None:
        return rows
    return to_schema_list(rows, config.schema_type, config.effective_decode_config)


def unwrap_result(records: "list[Any]", config: ExecutionConfig) -> Any:
    """Apply the single-result option: first record, or ``None`` for an empty result."""
    if not config.single:
        return records
    return records[0] if records else None


def wants_after_fetch(records: "list[Any]", config: ExecutionConfig) -> bool:
    return bool(records) and has_after_fetch(config.schema_type)


def available_workers() -> int:
    """Execution units available to the concurrent fan-out."""
    return os.cpu_count() or 1


def runs_concurrently(config: ExecutionConfig, total: int) -> bool:
    return config.concurrent and total > 1 and available_workers() > 1


def hook_error(index: int, error: BaseException) -> HookError:
    """Wrap a hook failure with its row index, keeping the original as the cause."""
    wrapped = HookError(index, str(error) or type(error).__name__)
    wrapped.__cause__ = error
    return wrapped
