"""Asynchronous execution engine."""

import inspect
from typing import TYPE_CHECKING, Any, Optional

import anyio

from rowcast.core.retry import run_with_retry_async
from rowcast.driver._common import (
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
from rowcast.protocols import AsyncMutationClient, AsyncQueryClient
from rowcast.utils.logging import log_event

if TYPE_CHECKING:
    from rowcast.core.config import ExecutionConfig
    from rowcast.core.context import ExecutionContext
    from rowcast.exceptions import HookError
    from rowcast.protocols import AsyncCursor
    from rowcast.typing import DictRow

__all__ = ("execute_async", "fetch_rows_async", "run_after_fetch_async")


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def execute_async(
    context: "Optional[ExecutionContext]",
    client: Any,
    statement: str,
    *args: Any,
    config: "Optional[ExecutionConfig]" = None,
) -> Any:
    """Async twin of :func:`rowcast.driver.execute`.

    ``post_fetch`` and ``after_fetch`` may be plain or coroutine functions.
    """
    context, stmt, config = prepare_call(context, statement, args, config)
    ensure_capability(client, stmt, AsyncMutationClient, AsyncQueryClient, asynchronous=True)

    if stmt.is_mutation:
        return await run_with_retry_async(
            lambda: client.execute_mutation(context, stmt.sql, stmt.args),
            context=context,
            policy=config.retry_policy,
            parameter_style=config.parameter_style,
        )

    cursor = await run_with_retry_async(
        lambda: client.execute_query(context, stmt.sql, stmt.args),
        context=context,
        policy=config.retry_policy,
        parameter_style=config.parameter_style,
    )
    records = materialize(await fetch_rows_async(cursor, config), config)

    if config.post_fetch is not None:
        context.raise_if_cancelled()
        await _maybe_await(config.post_fetch(context))

    if wants_after_fetch(records, config):
        await run_after_fetch_async(context, records, concurrent=runs_concurrently(config, len(records)))
    return unwrap_result(records, config)


async def fetch_rows_async(cursor: "AsyncCursor", config: "ExecutionConfig") -> "list[DictRow]":
    """Decode every row of ``cursor``; the cursor is closed on every exit path."""
    try:
        decoder = build_row_decoder(cursor.columns(), config)
        rows = []
        while await cursor.next():
            rows.append(decoder.decode(await cursor.scan_row()))
        error = cursor.err()
        if error is not None:
            raise error
        return rows
    finally:
        await cursor.close()


async def run_after_fetch_async(
    context: "ExecutionContext", records: "list[Any]", *, concurrent: bool = False
) -> None:
    """Invoke ``after_fetch(context, index, total)`` on every record, awaiting coroutine hooks.

    Raises:
        HookError: With the index of the first failing (or cancelled) row.
    """
    total = len(records)
    if not concurrent:
        for index, record in enumerate(records):
            try:
                context.raise_if_cancelled()
                await _maybe_await(record.after_fetch(context, index, total))
            except Exception as exc:
                raise hook_error(index, exc) from exc
        return

    failures: list[HookError] = []

    with context.child() as scope:

        async def run(index: int, record: Any) -> None:
            if scope.cancelled:
                return
            try:
                await _maybe_await(record.after_fetch(scope, index, total))
            except Exception as exc:  # noqa: BLE001
                if not failures:
                    failures.append(hook_error(index, exc))
                scope.cancel()

        log_event(
            logger,
            "fan_out",
            "Running after_fetch on %d records concurrently",
            total,
            records=total,
            mode="task_group",
        )
        async with anyio.create_task_group() as tg:
            for index, record in enumerate(records):
                tg.start_soon(run, index, record)

    if failures:
        failure = failures[0]
        raise failure from failure.__cause__
    context.raise_if_cancelled()
