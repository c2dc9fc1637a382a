"""Structural decoding of canonical value maps into typed records.

Rows arrive here as ``{column: str | None}`` maps. ``msgspec.convert`` does
the conversion for dataclasses, attrs classes, TypedDicts and
``msgspec.Struct`` types; pydantic models go through a cached
``TypeAdapter``. Dataclass and attrs fields pick their column from the
``"db"`` metadata tag; ``msgspec.Struct`` fields use ``msgspec.field(name=...)``.
"""

from collections.abc import Callable, Sequence
from functools import lru_cache
from pathlib import Path, PurePath
from typing import Any, Optional

import msgspec

from rowcast.core.config import DEFAULT_DECODE_CONFIG, DecodeConfig
from rowcast.core.parameters import FIELD_TAG
from rowcast.exceptions import ImproperConfigurationError, SchemaDecodeError
from rowcast.typing import get_type_adapter
from rowcast.utils.logging import get_logger, log_event
from rowcast.utils.type_guards import (
    is_attrs_schema,
    is_dataclass,
    is_msgspec_struct_type,
    is_pydantic_model_type,
    is_typed_dict,
)

__all__ = ("column_renames", "default_dec_hook", "detect_schema_type", "to_schema", "to_schema_list")

logger = get_logger("utils.schema")

_EXCLUDED = object()


@lru_cache(maxsize=128)
def detect_schema_type(schema_type: type) -> "Optional[str]":
    """Detect schema type with LRU caching.

    Returns:
        Type identifier string or None if unsupported
    """
    return (
        "typed_dict"
        if is_typed_dict(schema_type)
        else "dataclass"
        if is_dataclass(schema_type)
        else "msgspec"
        if is_msgspec_struct_type(schema_type)
        else "pydantic"
        if is_pydantic_model_type(schema_type)
        else "attrs"
        if is_attrs_schema(schema_type)
        else None
    )


def _tagged_fields(schema_type: type) -> "list[tuple[str, Optional[str]]]":
    if is_dataclass(schema_type):
        from dataclasses import fields

        return [(f.name, f.metadata.get(FIELD_TAG)) for f in fields(schema_type)]
    if is_attrs_schema(schema_type):
        import attrs

        return [(a.name, a.metadata.get(FIELD_TAG)) for a in attrs.fields(schema_type)]
    return []


@lru_cache(maxsize=128)
def column_renames(schema_type: type) -> "dict[str, Any]":
    """Map column names to field names for tagged dataclass and attrs fields.

    A ``"-"`` tag maps the field's own name to an exclusion marker so the
    column never populates it.
    """
    renames: dict[str, Any] = {}
    for name, tag in _tagged_fields(schema_type):
        if not tag:
            continue
        column = tag.split(",", 1)[0].strip()
        if column == "-":
            renames[name] = _EXCLUDED
        elif column and column != name:
            renames[column] = name
    return renames


def _apply_renames(row: "dict[str, Any]", renames: "dict[str, Any]") -> "dict[str, Any]":
    if not renames:
        return row
    out: dict[str, Any] = {}
    for key, value in row.items():
        target = renames.get(key, key)
        if target is _EXCLUDED:
            continue
        out[target] = value
    return out


def default_dec_hook(target_type: type, value: Any) -> Any:
    """Convert strings into path types; everything else is left to msgspec.

    Raises:
        TypeError: If ``target_type`` is not handled here.
    """
    if isinstance(target_type, type) and issubclass(target_type, (Path, PurePath)) and isinstance(value, str):
        return target_type(value)
    msg = f"Unsupported type: {target_type!r}"
    raise TypeError(msg)


def _converter(schema_type: type, decode_config: DecodeConfig) -> "Callable[[dict[str, Any]], Any]":
    kind = detect_schema_type(schema_type)
    if kind is None:
        msg = "`schema_type` should be a valid Dataclass, Pydantic model, Msgspec struct, Attrs class, or TypedDict"
        raise ImproperConfigurationError(msg)

    strict = not decode_config.weak
    if kind == "pydantic":
        adapter = get_type_adapter(schema_type)
        return lambda row: adapter.validate_python(row, strict=strict)

    renames = column_renames(schema_type)
    dec_hook = decode_config.dec_hook or default_dec_hook
    return lambda row: msgspec.convert(_apply_renames(row, renames), type=schema_type, strict=strict, dec_hook=dec_hook)


def to_schema(
    data: "dict[str, Any]",
    schema_type: type,
    decode_config: Optional[DecodeConfig] = None,
    *,
    index: Optional[int] = None,
) -> Any:
    """Populate a fresh ``schema_type`` record from one canonical value map.

    Raises:
        ImproperConfigurationError: If ``schema_type`` is not a supported record type.
        SchemaDecodeError: If the structural decoder rejects the row.
    """
    convert = _converter(schema_type, decode_config or DEFAULT_DECODE_CONFIG)
    try:
        return convert(data)
    except (msgspec.ValidationError, ValueError, TypeError) as exc:
        raise SchemaDecodeError(str(exc), index=index) from exc


def to_schema_list(
    rows: "Sequence[dict[str, Any]]", schema_type: type, decode_config: Optional[DecodeConfig] = None
) -> "list[Any]":
    """Populate one record per row, in row order; the first failure aborts the whole list."""
    convert = _converter(schema_type, decode_config or DEFAULT_DECODE_CONFIG)
    records = []
    for index, row in enumerate(rows):
        try:
            records.append(convert(row))
        except (msgspec.ValidationError, ValueError, TypeError) as exc:
            log_event(
                logger,
                "decode_failed",
                "Structural decode failed for row %d: %s",
                index,
                exc,
                index=index,
                schema=getattr(schema_type, "__name__", repr(schema_type)),
            )
            raise SchemaDecodeError(str(exc), index=index) from exc
    return records
