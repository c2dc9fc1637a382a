from dataclasses import Field
from functools import lru_cache
from importlib.util import find_spec
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from typing_extensions import TypeAlias, TypeVar

if TYPE_CHECKING:
    from pydantic import TypeAdapter

ATTRS_INSTALLED = find_spec("attrs") is not None
PYDANTIC_INSTALLED = find_spec("pydantic") is not None


class DataclassProtocol(Protocol):
    """Protocol for instance checking dataclasses."""

    __dataclass_fields__: "ClassVar[dict[str, Field[Any]]]"


T = TypeVar("T")

DictRow: TypeAlias = "dict[str, Any]"
"""A canonical value map: column name to decoded value."""


@lru_cache(typed=True)
def get_type_adapter(f: "type[T]") -> "TypeAdapter[T]":
    """Caches and returns a pydantic type adapter.

    Args:
        f: Type to create a type adapter for.

    Returns:
        :class:`pydantic.TypeAdapter`[:class:`typing.TypeVar`[T]]
    """
    from pydantic import TypeAdapter

    return TypeAdapter(f)


__all__ = (
    "ATTRS_INSTALLED",
    "PYDANTIC_INSTALLED",
    "DataclassProtocol",
    "DictRow",
    "T",
    "get_type_adapter",
)
