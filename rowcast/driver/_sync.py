"""Synchronous execution engine."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Optional

from rowcast.core.retry import run_with_retry
from rowcast.driver._common import (
    available_workers,
    build_row_decoder,
    ensure_capability,
    hook_error,
    logger,
    materialize,
    prepare_call,
    runs_concurrently,
    unwrap_result,
    wants_after_fetch,
)
from rowcast.protocols import MutationClient, QueryClient
from rowcast.utils.logging import log_event

if TYPE_CHECKING:
    from rowcast.core.config import ExecutionConfig
    from rowcast.core.context import ExecutionContext
    from rowcast.exceptions import HookError
    from rowcast.protocols import Cursor
    from rowcast.typing import DictRow

__all__ = ("execute", "fetch_rows", "run_after_fetch")


def execute(
    context: "Optional[ExecutionContext]",
    client: Any,
    statement: str,
    *args: Any,
    config: "Optional[ExecutionConfig]" = None,
) -> Any:
    """Execute ``statement`` on ``client`` and materialize its result.

    Mutations return the driver's result handle. Queries return a list of
    canonical value maps, a list of ``config.schema_type`` records, or with
    ``config.single`` the only record (``None`` when there are no rows).

    Args:
        context: Cancellation scope for the call; a fresh unbounded one when ``None``.
        client: Mutation- and/or query-capable database client.
        statement: SQL text.
        *args: Positional arguments; nested sequences are flattened.
        config: Per-call options.

    Raises:
        StatementPreconditionError: If the statement is too short to classify.
        ImproperConfigurationError: If the client cannot run the statement.
        SchemaDecodeError: If a row cannot be materialized into ``config.schema_type``.
        HookError: If an ``after_fetch`` hook fails.
    """
    context, stmt, config = prepare_call(context, statement, args, config)
    ensure_capability(client, stmt, MutationClient, QueryClient)

    if stmt.is_mutation:
        return run_with_retry(
            lambda: client.execute_mutation(context, stmt.sql, stmt.args),
            context=context,
            policy=config.retry_policy,
            parameter_style=config.parameter_style,
        )

    cursor = run_with_retry(
        lambda: client.execute_query(context, stmt.sql, stmt.args),
        context=context,
        policy=config.retry_policy,
        parameter_style=config.parameter_style,
    )
    records = materialize(fetch_rows(cursor, config), config)

    if config.post_fetch is not None:
        context.raise_if_cancelled()
        config.post_fetch(context)

    if wants_after_fetch(records, config):
        run_after_fetch(context, records, concurrent=runs_concurrently(config, len(records)))
    return unwrap_result(records, config)


def fetch_rows(cursor: "Cursor", config: "ExecutionConfig") -> "list[DictRow]":
    """Decode every row of ``cursor``; the cursor is closed on every exit path."""
    try:
        decoder = build_row_decoder(cursor.columns(), config)
        rows = []
        while cursor.next():
            rows.append(decoder.decode(cursor.scan_row()))
        error = cursor.err()
        if error is not None:
            raise error
        return rows
    finally:
        cursor.close()


def run_after_fetch(context: "ExecutionContext", records: "list[Any]", *, concurrent: bool = False) -> None:
    """Invoke ``after_fetch(context, index, total)`` on every record.

    Raises:
        HookError: With the index of the first failing (or cancelled) row.
    """
    if concurrent:
        _run_concurrently(context, records)
        return

    total = len(records)
    for index, record in enumerate(records):
        try:
            context.raise_if_cancelled()
            record.after_fetch(context, index, total)
        except Exception as exc:
            raise hook_error(index, exc) from exc


def _run_concurrently(context: "ExecutionContext", records: "list[Any]") -> None:
    total = len(records)
    lock = threading.Lock()
    failures: list[HookError] = []

    with context.child() as scope:

        def run(index: int, record: Any) -> None:
            if scope.cancelled:
                return
            try:
                record.after_fetch(scope, index, total)
            except Exception as exc:  # noqa: BLE001
                with lock:
                    if not failures:
                        failures.append(hook_error(index, exc))
                scope.cancel()

        log_event(
            logger, "fan_out", "Running after_fetch on %d records concurrently", total, records=total, mode="threads"
        )
        with ThreadPoolExecutor(max_workers=min(available_workers(), total)) as pool:
            for index, record in enumerate(records):
                pool.submit(run, index, record)

    if failures:
        failure = failures[0]
        raise failure from failure.__cause__
    context.raise_if_cancelled()
