"""Type guard functions for runtime type checking in rowcast.

This module provides type-safe runtime checks that help the type checker
understand type narrowing in place of ad hoc hasattr() checks.
"""

from typing import TYPE_CHECKING, Any

import msgspec

from rowcast.typing import ATTRS_INSTALLED, PYDANTIC_INSTALLED, DataclassProtocol

if TYPE_CHECKING:
    from typing_extensions import TypeGuard

    from rowcast.protocols import AfterFetchHook

__all__ = (
    "has_after_fetch",
    "is_attrs_instance",
    "is_attrs_schema",
    "is_dataclass",
    "is_dataclass_instance",
    "is_msgspec_struct",
    "is_msgspec_struct_type",
    "is_pydantic_model_type",
    "is_typed_dict",
)


def is_dataclass_instance(obj: Any) -> "TypeGuard[DataclassProtocol]":
    """Check if an object is a dataclass instance.

    Args:
        obj: An object to check.

    Returns:
        True if the object is a dataclass instance.
    """
    return not isinstance(obj, type) and hasattr(type(obj), "__dataclass_fields__")


def is_dataclass(obj: Any) -> "TypeGuard[DataclassProtocol]":
    """Check if an object is a dataclass or dataclass instance.

    Args:
        obj: Value to check.

    Returns:
        bool
    """
    if isinstance(obj, type) and hasattr(obj, "__dataclass_fields__"):
        return True
    return is_dataclass_instance(obj)


def is_msgspec_struct(obj: Any) -> "TypeGuard[msgspec.Struct]":
    """Check if a value is a msgspec struct instance."""
    return isinstance(obj, msgspec.Struct)


def is_msgspec_struct_type(obj: Any) -> bool:
    """Check if a value is a msgspec struct class."""
    return isinstance(obj, type) and issubclass(obj, msgspec.Struct)


def is_pydantic_model_type(obj: Any) -> bool:
    """Check if a value is a pydantic model class."""
    if not PYDANTIC_INSTALLED:
        return False
    from pydantic import BaseModel

    return isinstance(obj, type) and issubclass(obj, BaseModel)


def is_attrs_instance(obj: Any) -> bool:
    """Check if a value is an attrs class instance."""
    if not ATTRS_INSTALLED or isinstance(obj, type):
        return False
    import attrs

    return attrs.has(type(obj))


def is_attrs_schema(cls: Any) -> bool:
    """Check if a class is an attrs class."""
    if not ATTRS_INSTALLED or not isinstance(cls, type):
        return False
    import attrs

    return attrs.has(cls)


def is_typed_dict(obj: Any) -> bool:
    """Check if a value is a TypedDict class."""
    return isinstance(obj, type) and issubclass(obj, dict) and hasattr(obj, "__total__")


def has_after_fetch(schema_type: Any) -> "TypeGuard[type[AfterFetchHook]]":
    """Check whether records of ``schema_type`` define an ``after_fetch`` hook.

    Resolved once per call against the class, not per record.
    """
    return schema_type is not None and callable(getattr(schema_type, "after_fetch", None))

