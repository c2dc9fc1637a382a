"""Synchronous and asynchronous execution engines."""

from rowcast.driver._async import execute_async, fetch_rows_async, run_after_fetch_async
from rowcast.driver._sync import execute, fetch_rows, run_after_fetch

__all__ = ("execute", "execute_async", "fetch_rows", "fetch_rows_async", "run_after_fetch", "run_after_fetch_async")
