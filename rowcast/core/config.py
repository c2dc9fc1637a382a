"""Per-call execution options."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from rowcast.core.parameters import ParameterStyle
    from rowcast.core.retry import RetryPolicy

__all__ = ("DEFAULT_DECODE_CONFIG", "DecodeConfig", "ExecutionConfig")


@dataclass(frozen=True)
class DecodeConfig:
    """Structural decoder settings.

    Attributes:
        dec_hook: ``(target_type, value) -> converted`` hook tried for values the
            decoder cannot convert natively. Replaces the built-in hook.
        weak: Lax conversion, e.g. ``"42"`` fills an ``int`` field.
    """

    dec_hook: Optional[Callable[[type, Any], Any]] = None
    weak: bool = True


DEFAULT_DECODE_CONFIG = DecodeConfig()


@dataclass(frozen=True)
class ExecutionConfig:
    """Immutable options for one ``execute`` call.

    Attributes:
        schema_type: Record shape each row is materialized into. ``None`` returns canonical value maps.
        decode_config: Structural decoder settings, used only with ``schema_type``.
        single: Unwrap a one-row result to the row itself and an empty result to ``None``.
        raw: Return untouched column buffers. Ignored when ``schema_type`` is set.
        post_fetch: Called with the execution context after all rows are materialized,
            e.g. to release a pooled resource.
        concurrent: Run ``after_fetch`` hooks concurrently.
        retry_policy: Backoff schedule for transient failures. ``None`` makes exactly one attempt.
        parameter_style: Dialect used to classify driver errors as permanent. ``None`` checks all dialects.
    """

    schema_type: Optional[type] = None
    decode_config: Optional[DecodeConfig] = None
    single: bool = False
    raw: bool = False
    post_fetch: Optional[Callable[..., Any]] = None
    concurrent: bool = False
    retry_policy: "Optional[RetryPolicy]" = None
    parameter_style: "Optional[ParameterStyle]" = None

    def replace(self, **changes: Any) -> "ExecutionConfig":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    @property
    def structural(self) -> bool:
        return self.schema_type is not None

    @property
    def effective_decode_config(self) -> DecodeConfig:
        return self.decode_config or DEFAULT_DECODE_CONFIG
