"""Type-directed column decoding.

Turns one row of raw column buffers into a canonical value map, keyed by
column name, using each column's declared type and nullability.

Nullability policy: a column decodes to a bare value only when the driver
explicitly reports it as NOT NULL. Nullable and unknown columns decode to an
optional value (``None`` on SQL NULL). A NULL that arrives in a declared
NOT NULL column yields the type's zero value.

Numeric parse failures do not fail the row: an unparsable integer decodes to
``0`` and an unparsable float to ``0.0``. This keeps rows readable when a
driver hands back odd literals, at the cost of silently masking bad data.
"""

import datetime
import re
from collections.abc import Callable, Sequence
from typing import Any, Final, Optional, Union

import msgspec

from rowcast.core.columns import INT64, ColumnDescriptor, IntegerScanType, TypeClass
from rowcast.exceptions import DecodeError
from rowcast.utils.serializers import from_json

__all__ = (
    "BOOL_TRUE_VALUES",
    "RowDecoder",
    "decode_value",
    "parse_bool",
    "parse_date",
    "parse_datetime",
    "parse_float",
    "parse_int",
    "parse_time",
)

BOOL_TRUE_VALUES: Final[frozenset[str]] = frozenset({"true", "TRUE", "1"})

_INT_RE: Final = re.compile(r"[+-]?\d+")
_DATETIME_RE: Final = re.compile(r"(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?")
_TIME_RE: Final = re.compile(r"(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?(?:([Zz])|([+-])(\d{2})(?::?(\d{2}))?)?")
_EPOCH_ZERO: Final = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

RawValue = Union[bytes, bytearray, memoryview, str, None]


def _text(raw: "bytes | bytearray | memoryview | str") -> str:
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8", errors="replace")


def _as_bytes(raw: RawValue) -> Optional[bytes]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw.encode("utf-8")
    return bytes(raw)


def _micros(fraction: Optional[str]) -> int:
    if not fraction:
        return 0
    return int(fraction[:6].ljust(6, "0"))


def parse_int(text: str, scan_type: Optional[IntegerScanType] = None) -> int:
    """Parse a base-10 integer for the given storage width.

    Out of range values are clamped to the width; unparsable text yields ``0``.
    """
    scan_type = scan_type or INT64
    if not _INT_RE.fullmatch(text):
        return 0
    value = int(text)
    if not scan_type.signed and value < 0:
        return 0
    return scan_type.clamp(value)


def parse_float(text: str) -> float:
    """Parse a float; unparsable text yields ``0.0``."""
    try:
        return float(text)
    except ValueError:
        return 0.0


def parse_bool(text: str) -> bool:
    return text in BOOL_TRUE_VALUES


def _parse_rfc3339(text: str) -> Optional[datetime.datetime]:
    candidate = text.strip()
    if candidate[-1:] in {"Z", "z"}:
        candidate = f"{candidate[:-1]}+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(candidate)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def parse_datetime(text: str) -> Optional[datetime.datetime]:
    """Parse ``YYYY-MM-DD HH:MM:SS[.fraction]`` as UTC, falling back to RFC3339.

    Returns ``None`` when neither form matches.
    """
    match = _DATETIME_RE.fullmatch(text)
    if match is not None:
        year, month, day, hour, minute, second, fraction = match.groups()
        try:
            return datetime.datetime(
                int(year),
                int(month),
                int(day),
                int(hour),
                int(minute),
                int(second),
                _micros(fraction),
                tzinfo=datetime.timezone.utc,
            )
        except ValueError:
            pass
    return _parse_rfc3339(text)


def parse_date(text: str) -> Optional[datetime.date]:
    """Parse a calendar date, falling back to the date part of an RFC3339 timestamp."""
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        pass
    parsed = _parse_rfc3339(text)
    return parsed.date() if parsed is not None else None


def parse_time(text: str) -> Optional[datetime.time]:
    """Parse a time of day ``HH:MM:SS[.fraction]``.

    An optional ``Z`` or ``[+-]HH[:MM]`` suffix (as sent for ``TIMETZ``
    columns) is kept as the result's ``tzinfo``.
    """
    match = _TIME_RE.fullmatch(text)
    if match is None:
        return None
    hour, minute, second, fraction, zulu, sign, offset_hours, offset_minutes = match.groups()
    tzinfo: Optional[datetime.tzinfo] = None
    if zulu is not None:
        tzinfo = datetime.timezone.utc
    elif sign is not None:
        offset = datetime.timedelta(hours=int(offset_hours), minutes=int(offset_minutes or 0))
        try:
            tzinfo = datetime.timezone(-offset if sign == "-" else offset)
        except ValueError:
            return None
    try:
        return datetime.time(int(hour), int(minute), int(second), _micros(fraction), tzinfo=tzinfo)
    except ValueError:
        return None


def _parse_json(raw: "bytes | bytearray | memoryview | str") -> Any:
    try:
        return from_json(raw if isinstance(raw, (bytes, str)) else bytes(raw))
    except msgspec.DecodeError:
        return None


def _or_zero(value: Any, zero: Any) -> Any:
    return zero if value is None else value


_ZERO_VALUES: Final[dict[TypeClass, Any]] = {
    TypeClass.TEXT: "",
    TypeClass.FLOAT: 0.0,
    TypeClass.INTEGER: 0,
    TypeClass.BOOLEAN: False,
    TypeClass.DATETIME: _EPOCH_ZERO,
    TypeClass.DATE: datetime.date.min,
    TypeClass.TIME: datetime.time.min,
    TypeClass.JSON: None,
}


def _value_decoder(column: ColumnDescriptor) -> "Callable[[Any], Any]":
    """Build the decoder for one column's non-null buffers."""
    type_class = column.type_class
    if type_class is TypeClass.JSON:
        return _parse_json
    if type_class is TypeClass.FLOAT:
        return lambda raw: parse_float(_text(raw))
    if type_class is TypeClass.INTEGER:
        scan_type = column.scan_type
        return lambda raw: parse_int(_text(raw), scan_type)
    if type_class is TypeClass.BOOLEAN:
        return lambda raw: parse_bool(_text(raw))
    if type_class is TypeClass.DATETIME:
        return lambda raw: _or_zero(parse_datetime(_text(raw)), _EPOCH_ZERO)
    if type_class is TypeClass.DATE:
        return lambda raw: _or_zero(parse_date(_text(raw)), datetime.date.min)
    if type_class is TypeClass.TIME:
        return lambda raw: _or_zero(parse_time(_text(raw)), datetime.time.min)
    return _text


def decode_value(raw: RawValue, column: ColumnDescriptor) -> Any:
    """Decode one raw buffer according to ``column``'s declared type and nullability."""
    if raw is None:
        return _ZERO_VALUES[column.type_class] if column.declared_not_null else None
    return _value_decoder(column)(raw)


class RowDecoder:
    """Decodes every row of one result set.

    Per-column decoders are resolved once from the column descriptors.

    Args:
        columns: Column descriptors reported by the cursor.
        raw: Yield untouched ``bytes`` buffers instead of typed values.
        structural: Yield ``str | None`` per column, leaving typing to the structural decoder.
    """

    __slots__ = ("_decoders", "_zeros", "columns", "names", "raw", "structural")

    def __init__(self, columns: "Sequence[ColumnDescriptor]", *, raw: bool = False, structural: bool = False) -> None:
        self.columns = tuple(columns)
        self.names = tuple(column.name for column in self.columns)
        self.raw = raw
        self.structural = structural
        self._decoders = tuple(_value_decoder(column) for column in self.columns)
        self._zeros = tuple(
            _ZERO_VALUES[column.type_class] if column.declared_not_null else None for column in self.columns
        )

    def decode(self, row: "Sequence[RawValue]") -> "dict[str, Any]":
        """Decode one row into its canonical value map.

        Raises:
            DecodeError: If the row width does not match the column count.
        """
        if len(row) != len(self.columns):
            msg = f"Row has {len(row)} values but the result set has {len(self.columns)} columns"
            raise DecodeError(msg)
        if self.raw:
            return {name: _as_bytes(value) for name, value in zip(self.names, row)}
        if self.structural:
            return {name: None if value is None else _text(value) for name, value in zip(self.names, row)}
        return {
            name: zero if value is None else decoder(value)
            for name, value, decoder, zero in zip(self.names, row, self._decoders, self._zeros)
        }
