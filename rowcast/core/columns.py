"""Column metadata reported by a query cursor.

A :class:`ColumnDescriptor` is built once per result set. Its declared type
name is folded into a :class:`TypeClass` that selects the decoder for every
value in the column.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Final, Optional

__all__ = (
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "ColumnDescriptor",
    "IntegerScanType",
    "TypeClass",
    "resolve_type_class",
)


class TypeClass(str, Enum):
    """Decoding family of a declared database type."""

    TEXT = "text"
    FLOAT = "float"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    TIME = "time"
    JSON = "json"


@dataclass(frozen=True)
class IntegerScanType:
    """Storage width and signedness the driver reports for an integer column."""

    bits: int = 64
    signed: bool = True

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def clamp(self, value: int) -> int:
        """Clamp ``value`` to the representable range."""
        return min(max(value, self.min_value), self.max_value)


INT8: Final = IntegerScanType(8, True)
INT16: Final = IntegerScanType(16, True)
INT32: Final = IntegerScanType(32, True)
INT64: Final = IntegerScanType(64, True)
UINT8: Final = IntegerScanType(8, False)
UINT16: Final = IntegerScanType(16, False)
UINT32: Final = IntegerScanType(32, False)
UINT64: Final = IntegerScanType(64, False)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Name, declared type and nullability of one result column.

    ``nullable`` is tri-state: ``True``/``False`` when the driver reports it,
    ``None`` when it does not (common for computed columns).
    """

    name: str
    type_name: str = ""
    nullable: Optional[bool] = None
    scan_type: Optional[IntegerScanType] = None

    @property
    def declared_not_null(self) -> bool:
        return self.nullable is False

    @property
    def type_class(self) -> TypeClass:
        return resolve_type_class(self.type_name)


_PARAMS_RE: Final = re.compile(r"\(.*?\)")
_SPACE_RE: Final = re.compile(r"\s+")
_MODIFIERS: Final[frozenset[str]] = frozenset({"UNSIGNED", "SIGNED", "ZEROFILL"})

_TYPE_CLASSES: Final[dict[str, TypeClass]] = {
    **dict.fromkeys(
        ("FLOAT", "FLOAT4", "FLOAT8", "DOUBLE", "DOUBLE PRECISION", "REAL", "DECIMAL", "NUMERIC", "DEC", "MONEY"),
        TypeClass.FLOAT,
    ),
    **dict.fromkeys(
        (
            "INT",
            "INTEGER",
            "TINYINT",
            "SMALLINT",
            "MEDIUMINT",
            "BIGINT",
            "INT1",
            "INT2",
            "INT4",
            "INT8",
            "SERIAL",
            "SMALLSERIAL",
            "BIGSERIAL",
            "SERIAL4",
            "SERIAL8",
            "YEAR",
        ),
        TypeClass.INTEGER,
    ),
    **dict.fromkeys(("BOOL", "BOOLEAN", "BIT"), TypeClass.BOOLEAN),
    **dict.fromkeys(
        (
            "DATETIME",
            "DATETIME2",
            "SMALLDATETIME",
            "DATETIMEOFFSET",
            "TIMESTAMP",
            "TIMESTAMPTZ",
            "TIMESTAMP WITH TIME ZONE",
            "TIMESTAMP WITHOUT TIME ZONE",
        ),
        TypeClass.DATETIME,
    ),
    "DATE": TypeClass.DATE,
    **dict.fromkeys(("TIME", "TIMETZ", "TIME WITH TIME ZONE", "TIME WITHOUT TIME ZONE"), TypeClass.TIME),
    **dict.fromkeys(("JSON", "JSONB"), TypeClass.JSON),
}


@lru_cache(maxsize=256)
def resolve_type_class(type_name: str) -> TypeClass:
    """Fold a driver-reported type name into its decoding family.

    Length/precision arguments and ``UNSIGNED``/``ZEROFILL`` modifiers are
    ignored. Anything unrecognized decodes as text.

    Examples:
        >>> resolve_type_class("varchar(255)")
        <TypeClass.TEXT: 'text'>
        >>> resolve_type_class("UNSIGNED BIGINT")
        <TypeClass.INTEGER: 'integer'>
    """
    normalized = _SPACE_RE.sub(" ", _PARAMS_RE.sub("", type_name.upper())).strip()
    words = [word for word in normalized.split(" ") if word not in _MODIFIERS]
    return _TYPE_CLASSES.get(" ".join(words), TypeClass.TEXT)
