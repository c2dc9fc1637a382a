"""Retry policies and the retry adapter shared by the exec and query paths.

A :class:`RetryPolicy` is an immutable description of a backoff schedule. Each
call builds a fresh :class:`BackoffSchedule` from it, so one policy can be
shared between calls and threads.
"""

import re
import secrets
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Optional

from rowcast.core.parameters import ParameterStyle
from rowcast.exceptions import (
    ExecutionCancelledError,
    ImproperConfigurationError,
    PermanentExecutionError,
    PreconditionError,
)
from rowcast.typing import T
from rowcast.utils.logging import get_logger, log_event

if TYPE_CHECKING:
    from rowcast.core.context import ExecutionContext

__all__ = (
    "BackoffSchedule",
    "RetryPolicy",
    "constant_backoff",
    "exponential_backoff",
    "is_permanent_error",
    "run_with_retry",
    "run_with_retry_async",
)

logger = get_logger("core.retry")

_JITTER_SCALE: Final[int] = 1000

_COMMON_PERMANENT_PATTERNS: Final[tuple[str, ...]] = (
    r"transaction has already been committed or rolled back",
    r"connection (?:is |was )?(?:already )?closed",
    r"cannot operate on a closed (?:database|cursor)",
    r"expected \d+ arguments, got \d+",
    r"incorrect number of bindings supplied",
)
_DIALECT_PERMANENT_PATTERNS: Final[dict[ParameterStyle, tuple[str, ...]]] = {
    ParameterStyle.QMARK: (
        r"incorrect arguments to mysqld_stmt_execute",
        r"invalid connection",
        r"statement count mismatch",
    ),
    ParameterStyle.NUMERIC: (
        r"bind message supplies \d+ parameters?, but prepared statement .* requires \d+",
        r"the server expects \d+ arguments? for this query, \d+ (?:was|were) passed",
        r"could not determine data type of parameter \$\d+",
    ),
}


def _compile(patterns: "tuple[str, ...]") -> "re.Pattern[str]":
    return re.compile("|".join(f"(?:{pattern})" for pattern in patterns), re.IGNORECASE)


_PERMANENT_MATCHERS: Final[dict[Optional[ParameterStyle], "re.Pattern[str]"]] = {
    None: _compile(
        _COMMON_PERMANENT_PATTERNS + tuple(p for patterns in _DIALECT_PERMANENT_PATTERNS.values() for p in patterns)
    ),
    **{
        style: _compile(_COMMON_PERMANENT_PATTERNS + patterns)
        for style, patterns in _DIALECT_PERMANENT_PATTERNS.items()
    },
}


def is_permanent_error(error: BaseException, parameter_style: Optional[ParameterStyle] = None) -> bool:
    """Return True when retrying ``error`` can never succeed.

    Closed connections and transactions and argument-count mismatches are
    permanent. Driver errors are matched by message against the patterns of
    ``parameter_style``; ``None`` checks the patterns of every dialect.
    """
    if isinstance(
        error, (PermanentExecutionError, PreconditionError, ImproperConfigurationError, ExecutionCancelledError)
    ):
        return True
    return _PERMANENT_MATCHERS[parameter_style].search(str(error)) is not None


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule description.

    Attributes:
        initial_interval: Delay in seconds before the first retry.
        multiplier: Factor applied to the delay after every retry; ``1.0`` keeps it constant.
        max_interval: Upper bound for a single delay.
        max_elapsed_time: Stop once this many seconds have passed since the first attempt.
        max_attempts: Total attempts including the first one.
        jitter: Random fraction of the delay added on top of it.
    """

    initial_interval: float = 0.5
    multiplier: float = 2.0
    max_interval: Optional[float] = 60.0
    max_elapsed_time: Optional[float] = 900.0
    max_attempts: Optional[int] = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts is not None and self.max_attempts < 1:
            msg = f"max_attempts must be at least 1, got {self.max_attempts}"
            raise ImproperConfigurationError(msg)
        if self.initial_interval < 0 or self.multiplier < 1.0:
            msg = "initial_interval must be non-negative and multiplier at least 1.0"
            raise ImproperConfigurationError(msg)

    def schedule(self) -> "BackoffSchedule":
        """Start a fresh schedule for one call."""
        return BackoffSchedule(self)


class BackoffSchedule:
    """Stateful iteration over one policy's delays."""

    __slots__ = ("_current", "_started", "failures", "policy")

    def __init__(self, policy: RetryPolicy) -> None:
        self.policy = policy
        self.failures = 0
        self._current = policy.initial_interval
        self._started = time.monotonic()

    def next_delay(self) -> Optional[float]:
        """Record a failed attempt and return the delay before the next one, or ``None`` to stop."""
        self.failures += 1
        policy = self.policy
        if policy.max_attempts is not None and self.failures >= policy.max_attempts:
            return None

        delay = self._current
        if policy.jitter > 0:
            max_jitter = int(delay * policy.jitter * _JITTER_SCALE)
            delay += secrets.randbelow(max_jitter + 1) / _JITTER_SCALE if max_jitter else 0.0
        if policy.max_interval is not None:
            delay = min(delay, policy.max_interval)

        if policy.max_elapsed_time is not None:
            elapsed = time.monotonic() - self._started
            if elapsed + delay > policy.max_elapsed_time:
                return None

        next_interval = self._current * policy.multiplier
        self._current = min(next_interval, policy.max_interval) if policy.max_interval is not None else next_interval
        return delay


def exponential_backoff(
    initial_interval: float = 0.5,
    *,
    multiplier: float = 2.0,
    max_interval: Optional[float] = 60.0,
    max_elapsed_time: Optional[float] = 900.0,
    max_attempts: Optional[int] = None,
    jitter: float = 0.0,
) -> RetryPolicy:
    """Delays that double after every failure, bounded by elapsed time and optionally by attempts."""
    return RetryPolicy(
        initial_interval=initial_interval,
        multiplier=multiplier,
        max_interval=max_interval,
        max_elapsed_time=max_elapsed_time,
        max_attempts=max_attempts,
        jitter=jitter,
    )


def constant_backoff(interval: float = 1.0, *, max_attempts: Optional[int] = None) -> RetryPolicy:
    """A fixed delay between attempts, unbounded unless ``max_attempts`` is given."""
    return RetryPolicy(
        initial_interval=interval,
        multiplier=1.0,
        max_interval=None,
        max_elapsed_time=None,
        max_attempts=max_attempts,
    )


def run_with_retry(
    attempt: "Callable[[], T]",
    *,
    context: "ExecutionContext",
    policy: Optional[RetryPolicy] = None,
    parameter_style: Optional[ParameterStyle] = None,
) -> T:
    """Call ``attempt`` until it succeeds, fails permanently or the schedule runs out.

    Without a policy exactly one attempt is made. The last error is re-raised
    unchanged when the schedule is exhausted.

    Raises:
        ExecutionCancelledError: If ``context`` is cancelled before an attempt or during a wait.
    """
    context.raise_if_cancelled()
    if policy is None:
        return attempt()

    schedule = policy.schedule()
    while True:
        try:
            return attempt()
        except Exception as exc:
            if is_permanent_error(exc, parameter_style):
                raise
            delay = schedule.next_delay()
            if delay is None:
                raise
            log_event(
                logger,
                "retry",
                "Attempt %d failed, retrying in %.3fs: %s",
                schedule.failures,
                delay,
                exc,
                attempt=schedule.failures,
                delay=delay,
                error=type(exc).__name__,
            )
            if context.wait(delay):
                msg = "Execution context was cancelled while waiting to retry"
                raise ExecutionCancelledError(msg) from exc


async def run_with_retry_async(
    attempt: "Callable[[], Awaitable[T]]",
    *,
    context: "ExecutionContext",
    policy: Optional[RetryPolicy] = None,
    parameter_style: Optional[ParameterStyle] = None,
) -> T:
    """Async twin of :func:`run_with_retry`."""
    context.raise_if_cancelled()
    if policy is None:
        return await attempt()

    schedule = policy.schedule()
    while True:
        try:
            return await attempt()
        except Exception as exc:
            if is_permanent_error(exc, parameter_style):
                raise
            delay = schedule.next_delay()
            if delay is None:
                raise
            log_event(
                logger,
                "retry",
                "Attempt %d failed, retrying in %.3fs: %s",
                schedule.failures,
                delay,
                exc,
                attempt=schedule.failures,
                delay=delay,
                error=type(exc).__name__,
            )
            if await context.wait_async(delay):
                msg = "Execution context was cancelled while waiting to retry"
                raise ExecutionCancelledError(msg) from exc
