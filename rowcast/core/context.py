"""Per-call cancellation scope.

One :class:`ExecutionContext` spans a single ``execute`` call. Retry waits,
the post-fetch callback and every fan-out task observe it, and the concurrent
fan-out derives a :meth:`~ExecutionContext.child` scope that the first failing
task cancels.
"""

import threading
import time
from typing import Optional

import anyio

from rowcast.exceptions import ExecutionCancelledError

__all__ = ("ExecutionContext",)

_ASYNC_WAIT_SLICE = 0.05


class ExecutionContext:
    """Cancellation flag plus optional deadline, safe to share between threads."""

    __slots__ = ("_children", "_deadline", "_event", "_lock", "_parent")

    def __init__(self, timeout: Optional[float] = None, *, parent: "Optional[ExecutionContext]" = None) -> None:
        """Create a context.

        Args:
            timeout: Seconds from now after which the context counts as cancelled.
            parent: Context whose cancellation also cancels this one.
        """
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[ExecutionContext] = []
        self._parent = parent
        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

    @property
    def deadline(self) -> Optional[float]:
        """Monotonic deadline, if any."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent is not None and self._parent.cancelled

    def cancel(self) -> None:
        """Cancel this context and every child derived from it."""
        with self._lock:
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    def child(self, timeout: Optional[float] = None) -> "ExecutionContext":
        """Derive a scope that is cancelled together with this one.

        The parent tracks the child until :meth:`close` detaches it; use the
        child as a context manager to detach it on exit.
        """
        child = ExecutionContext(timeout, parent=self)
        with self._lock:
            self._children.append(child)
            if self._event.is_set():
                child._event.set()
        return child

    def close(self) -> None:
        """Detach this scope from its parent. Safe to call more than once."""
        parent = self._parent
        if parent is None:
            return
        with parent._lock:
            if self in parent._children:
                parent._children.remove(self)

    def __enter__(self) -> "ExecutionContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            msg = "Execution context was cancelled"
            raise ExecutionCancelledError(msg)

    def wait(self, seconds: float) -> bool:
        """Block for up to ``seconds``; return ``True`` if the context got cancelled meanwhile."""
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(max(timeout, 0.0))
        return self.cancelled

    async def wait_async(self, seconds: float) -> bool:
        """Async twin of :meth:`wait`, polling the flag between short sleeps."""
        end = time.monotonic() + seconds
        while not self.cancelled:
            left = end - time.monotonic()
            if left <= 0:
                break
            await anyio.sleep(min(left, _ASYNC_WAIT_SLICE))
        return self.cancelled
