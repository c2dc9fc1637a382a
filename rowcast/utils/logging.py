"""Logging helpers for rowcast.

Modules log through :func:`get_logger`, which places them under the
``rowcast`` namespace. The engine only emits DEBUG breadcrumbs, each written
with :func:`log_event` so the record carries an ``extra_fields`` mapping: the
event name plus the call's own data (statement operation, retry attempt and
delay, failing row index, fan-out size). :class:`StructuredFormatter` renders
those fields as one JSON object per line for hosts that attach it to a
handler.
"""

import logging
from typing import Any, Optional

from rowcast.utils.serializers import to_json

__all__ = ("EXTRA_FIELDS_ATTR", "StructuredFormatter", "get_logger", "log_event")

EXTRA_FIELDS_ATTR = "extra_fields"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``rowcast`` namespace.

    Args:
        name: Logger name. If not provided, returns the root rowcast logger.

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger("rowcast")
    if not name.startswith("rowcast"):
        name = f"rowcast.{name}"
    return logging.getLogger(name)


def log_event(
    logger: logging.Logger, event: str, message: str, *args: Any, level: int = logging.DEBUG, **fields: Any
) -> None:
    """Log ``message`` with ``event`` and ``fields`` attached as ``extra_fields``.

    Nothing is built when ``level`` is disabled for ``logger``. Field values
    should be JSON-encodable.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, *args, extra={EXTRA_FIELDS_ATTR: {"event": event, **fields}}, stacklevel=2)


class StructuredFormatter(logging.Formatter):
    """JSON formatter that inlines the event fields of rowcast breadcrumbs."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        fields = getattr(record, EXTRA_FIELDS_ATTR, None)
        if fields:
            entry.update(fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return to_json(entry)
