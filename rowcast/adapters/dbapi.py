"""Client for PEP 249 (DB-API 2.0) connections.

Wraps any DB-API connection so it satisfies both the mutation and the query
capability. ``cursor.description`` supplies column names, type codes and the
``null_ok`` nullability flag; fetched values are rendered back into raw byte
buffers so every driver goes through the same type-directed decoder.
"""

import datetime
import re
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional, Union

from rowcast.core.columns import ColumnDescriptor, IntegerScanType
from rowcast.exceptions import ConnectionClosedError, ParameterCountMismatchError
from rowcast.utils.logging import get_logger, log_event
from rowcast.utils.serializers import to_json

if TYPE_CHECKING:
    from rowcast.core.context import ExecutionContext

__all__ = ("DBAPIClient", "DBAPICursor", "MutationResult", "describe_columns", "encode_value")

logger = get_logger("adapters.dbapi")

TypeNameResolver = Callable[[Any], str]
ScanTypeResolver = Callable[[Any], Optional[IntegerScanType]]

_CLOSED_RE: Final = re.compile(
    r"closed (?:database|cursor|connection)|connection (?:is |was )?(?:already )?closed", re.IGNORECASE
)
_PARAMETER_COUNT_RE: Final = re.compile(
    r"number of bindings|expected \d+ arguments|bind message supplies|server expects \d+ arguments|"
    r"not all arguments converted|not enough arguments",
    re.IGNORECASE,
)


class MutationResult(NamedTuple):
    """Result handle of an INSERT/UPDATE/DELETE."""

    rows_affected: int
    last_insert_id: Optional[Union[int, str]] = None


def _default_type_name(type_code: Any) -> str:
    if isinstance(type_code, str):
        return type_code
    return ""


def describe_columns(
    description: "Optional[Sequence[Sequence[Any]]]",
    type_name_resolver: Optional[TypeNameResolver] = None,
    scan_type_resolver: Optional[ScanTypeResolver] = None,
) -> "list[ColumnDescriptor]":
    """Build column descriptors from a DB-API ``cursor.description``.

    ``null_ok`` (the seventh item) is kept as reported, so drivers that leave
    it ``None`` produce columns of unknown nullability.
    """
    resolve_name = type_name_resolver or _default_type_name
    columns = []
    for entry in description or ():
        type_code = entry[1] if len(entry) > 1 else None
        null_ok = entry[6] if len(entry) > 6 else None
        columns.append(
            ColumnDescriptor(
                name=str(entry[0]),
                type_name=resolve_name(type_code),
                nullable=None if null_ok is None else bool(null_ok),
                scan_type=scan_type_resolver(type_code) if scan_type_resolver is not None else None,
            )
        )
    return columns


def encode_value(value: Any) -> Optional[bytes]:
    """Render a fetched Python value as the raw text the decoder expects."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, bool):
        return b"1" if value else b"0"
    if isinstance(value, (int, float, Decimal, str)):
        return str(value).encode("utf-8")
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=" ").encode("utf-8")
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat().encode("utf-8")
    if isinstance(value, (dict, list)):
        return to_json(value, as_bytes=True)
    return str(value).encode("utf-8")


def _translate(error: Exception) -> Exception:
    message = str(error)
    if _CLOSED_RE.search(message):
        return ConnectionClosedError(message)
    if _PARAMETER_COUNT_RE.search(message):
        return ParameterCountMismatchError(message)
    return error


class DBAPICursor:
    """Adapts a DB-API cursor to the raw-buffer cursor protocol."""

    __slots__ = ("_closed", "_columns", "_cursor", "_error", "_row")

    def __init__(self, cursor: Any, columns: "list[ColumnDescriptor]") -> None:
        self._cursor = cursor
        self._columns = columns
        self._row: Optional[Sequence[Any]] = None
        self._error: Optional[BaseException] = None
        self._closed = False

    def columns(self) -> "list[ColumnDescriptor]":
        return self._columns

    def next(self) -> bool:
        if self._closed or self._error is not None:
            return False
        try:
            row = self._cursor.fetchone()
        except Exception as exc:  # noqa: BLE001
            self._error = _translate(exc)
            return False
        self._row = row
        return row is not None

    def scan_row(self) -> "list[Optional[bytes]]":
        if self._row is None:
            return []
        return [encode_value(value) for value in self._row]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cursor.close()

    def err(self) -> Optional[BaseException]:
        return self._error


class DBAPIClient:
    """Mutation- and query-capable client over a DB-API connection.

    Args:
        connection: Open PEP 249 connection.
        type_name_resolver: Maps a description ``type_code`` to a declared type name.
            Defaults to using string type codes verbatim and ``""`` otherwise.
        scan_type_resolver: Maps a ``type_code`` to an integer storage hint.
    """

    __slots__ = ("connection", "scan_type_resolver", "type_name_resolver")

    def __init__(
        self,
        connection: Any,
        *,
        type_name_resolver: Optional[TypeNameResolver] = None,
        scan_type_resolver: Optional[ScanTypeResolver] = None,
    ) -> None:
        self.connection = connection
        self.type_name_resolver = type_name_resolver
        self.scan_type_resolver = scan_type_resolver

    def _cursor(self) -> Any:
        try:
            return self.connection.cursor()
        except Exception as exc:
            translated = _translate(exc)
            if translated is exc:
                raise
            raise translated from exc

    def execute_mutation(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> MutationResult:
        context.raise_if_cancelled()
        cursor = self._cursor()
        try:
            cursor.execute(sql, tuple(args))
            rows_affected = cursor.rowcount if cursor.rowcount is not None else -1
            return MutationResult(rows_affected, getattr(cursor, "lastrowid", None))
        except Exception as exc:
            translated = _translate(exc)
            if translated is exc:
                raise
            raise translated from exc
        finally:
            cursor.close()

    def execute_query(self, context: "ExecutionContext", sql: str, args: "Sequence[Any]") -> DBAPICursor:
        context.raise_if_cancelled()
        cursor = self._cursor()
        try:
            cursor.execute(sql, tuple(args))
        except Exception as exc:
            cursor.close()
            translated = _translate(exc)
            if translated is exc:
                raise
            raise translated from exc
        columns = describe_columns(cursor.description, self.type_name_resolver, self.scan_type_resolver)
        log_event(logger, "query", "Query returned %d columns", len(columns), columns=len(columns))
        return DBAPICursor(cursor, columns)
