"""JSON serialization utilities for rowcast.

Thin wrappers over ``msgspec.json`` used by the column decoder, the DB-API
adapter and the structured log formatter.
"""

from typing import Any, Literal, overload

import msgspec

from rowcast.exceptions import SerializationError

__all__ = ("from_json", "to_json")

_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder()


@overload
def to_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def to_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def to_json(data: Any, *, as_bytes: bool = False) -> str | bytes:
    """Encode data to JSON string or bytes.

    Args:
        data: Data to encode.
        as_bytes: Whether to return bytes instead of string.

    Raises:
        SerializationError: If the value cannot be encoded.

    Returns:
        JSON string or bytes representation based on as_bytes parameter.
    """
    try:
        encoded = _encoder.encode(data)
    except (TypeError, msgspec.EncodeError) as exc:
        msg = f"Unable to encode {type(data).__name__} as JSON"
        raise SerializationError(msg) from exc
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def from_json(data: str | bytes) -> Any:
    """Decode JSON string or bytes to Python object.

    Raises:
        msgspec.DecodeError: If the payload is not valid JSON.
    """
    return _decoder.decode(data)
