"""Positional argument flattening and placeholder generation.

Drivers expect one flat list of scalars. Callers often hold nested lists
(``WHERE id IN (...)`` expansions, bulk ``VALUES`` rows) or records; the
helpers here turn those into the flat list and build matching placeholder
groups for the target parameter style.
"""

from collections.abc import Iterator, Mapping, Sequence
from enum import Enum
from typing import Any, Final, Optional

from rowcast.exceptions import ParameterError, PlaceholderPreconditionError
from rowcast.utils.type_guards import is_attrs_instance, is_dataclass_instance, is_msgspec_struct

__all__ = (
    "FIELD_TAG",
    "ParameterStyle",
    "RecordField",
    "flatten_parameters",
    "generate_placeholders",
    "insert_statement",
    "iter_record_fields",
    "record_columns",
    "record_to_parameters",
)

FIELD_TAG: Final[str] = "db"
"""Metadata key holding a field's column tag, e.g. ``field(metadata={"db": "email,omitempty"})``."""

_EXCLUDE_TAG: Final[str] = "-"
_OMIT_EMPTY: Final[str] = "omitempty"
_SCALAR_SEQUENCES: Final[tuple[type, ...]] = (str, bytes, bytearray, memoryview)


class ParameterStyle(str, Enum):
    """Parameter style enumeration.

    Supported parameter styles:
    - QMARK: ? placeholders (MySQL, SQLite)
    - NUMERIC: $1, $2 placeholders (PostgreSQL)
    """

    QMARK = "qmark"
    NUMERIC = "numeric"


def _is_flattenable(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, _SCALAR_SEQUENCES)


def _flatten_into(out: "list[Any]", values: "Sequence[Any]") -> None:
    for value in values:
        if _is_flattenable(value):
            _flatten_into(out, value)
        else:
            out.append(value)


def flatten_parameters(*args: Any) -> "list[Any]":
    """Expand nested sequences depth-first into one flat argument list.

    Strings, bytes and mappings are scalars here; everything else that is a
    :class:`~collections.abc.Sequence` is expanded element by element.

    Examples:
        >>> flatten_parameters(1, [2, (3, 4)], "x")
        [1, 2, 3, 4, 'x']
    """
    out: list[Any] = []
    _flatten_into(out, args)
    return out


class RecordField:
    """One field of a record as seen through its column tag."""

    __slots__ = ("column", "name", "omit_empty", "value")

    def __init__(self, name: str, column: str, value: Any, omit_empty: bool = False) -> None:
        self.name = name
        self.column = column
        self.value = value
        self.omit_empty = omit_empty

    def __repr__(self) -> str:
        return f"RecordField(name={self.name!r}, column={self.column!r}, value={self.value!r})"


def _parse_tag(name: str, tag: Optional[str]) -> "tuple[str, bool]":
    if not tag:
        return name, False
    column, *options = (part.strip() for part in tag.split(","))
    return column or name, _OMIT_EMPTY in options


def _raw_fields(record: Any) -> "Iterator[tuple[str, Any, Optional[str]]]":
    if is_dataclass_instance(record):
        from dataclasses import fields

        for f in fields(record):
            yield f.name, getattr(record, f.name), f.metadata.get(FIELD_TAG)
    elif is_attrs_instance(record):
        import attrs

        for a in attrs.fields(type(record)):
            yield a.name, getattr(record, a.name), a.metadata.get(FIELD_TAG)
    elif is_msgspec_struct(record):
        import msgspec

        for info in msgspec.structs.fields(record):
            tag = info.encode_name if info.encode_name != info.name else None
            yield info.name, getattr(record, info.name), tag
    else:
        msg = f"Expected a dataclass, attrs or msgspec record, got {type(record).__name__}"
        raise ParameterError(msg)


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(value == type(value)())
    except (TypeError, ValueError):
        return False


def iter_record_fields(record: Any) -> "Iterator[RecordField]":
    """Yield the fields of ``record`` that contribute statement arguments.

    Fields are visited in declaration order. Private fields (leading ``_``),
    fields tagged ``"-"``, ``omitempty`` fields holding their type's zero value
    and mapping-valued fields are skipped.

    Raises:
        ParameterError: If ``record`` is not a dataclass, attrs or msgspec instance.
    """
    for name, value, tag in _raw_fields(record):
        if name.startswith("_") or tag == _EXCLUDE_TAG:
            continue
        column, omit_empty = _parse_tag(name, tag)
        if omit_empty and _is_zero(value):
            continue
        if isinstance(value, Mapping):
            continue
        yield RecordField(name, column, value, omit_empty)


def record_to_parameters(record: Any) -> "list[Any]":
    """Convert a record into a flat positional argument list.

    Sequence-valued fields are flattened in place.
    """
    out: list[Any] = []
    for field in iter_record_fields(record):
        if _is_flattenable(field.value):
            _flatten_into(out, field.value)
        else:
            out.append(field.value)
    return out


def record_columns(record: Any) -> "list[str]":
    """Column names for the fields :func:`record_to_parameters` emits, in the same order."""
    return [field.column for field in iter_record_fields(record)]


def generate_placeholders(
    columns: int, rows: int, offset: int = 0, style: ParameterStyle = ParameterStyle.QMARK
) -> str:
    """Build comma separated placeholder groups, one group per row.

    Args:
        columns: Placeholders per group.
        rows: Number of groups.
        offset: Ordinal already consumed by earlier placeholders (NUMERIC only).
        style: Target parameter style.

    Raises:
        PlaceholderPreconditionError: If ``columns`` or ``rows`` is not positive.

    Examples:
        >>> generate_placeholders(3, 2)
        '( ?,?,? ),( ?,?,? )'
        >>> generate_placeholders(2, 2, style=ParameterStyle.NUMERIC)
        '($1,$2),($3,$4)'
    """
    if columns <= 0 or rows <= 0:
        msg = f"Placeholder generation needs positive column and row counts, got columns={columns} rows={rows}"
        raise PlaceholderPreconditionError(msg)

    if style is ParameterStyle.QMARK:
        group = "( " + ",".join("?" * columns) + " )"
        return ",".join([group] * rows)

    groups = []
    ordinal = offset
    for _ in range(rows):
        markers = []
        for _ in range(columns):
            ordinal += 1
            markers.append(f"${ordinal}")
        groups.append("(" + ",".join(markers) + ")")
    return ",".join(groups)


def insert_statement(
    table: str, columns: "Sequence[str]", rows: int = 1, style: ParameterStyle = ParameterStyle.QMARK
) -> str:
    """Template a multi-row ``INSERT`` for ``table``.

    Examples:
        >>> insert_statement("users", ["id", "name"], rows=2, style=ParameterStyle.NUMERIC)
        'INSERT INTO users (id,name) VALUES ($1,$2),($3,$4)'
    """
    placeholders = generate_placeholders(len(columns), rows, 0, style)
    return f"INSERT INTO {table} ({','.join(columns)}) VALUES {placeholders}"
