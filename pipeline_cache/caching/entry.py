"""
Cache Entry Wrapper

Every cached value is stored inside a CacheEntry so a stored "nothing"
(has_value=False) can be told apart from a store miss (get() returns None).
has_value is required and unknown fields are rejected, so a payload that is
not an entry fails validation instead of reading as an empty one.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class CacheEntry(BaseModel, Generic[T]):
    """
    Stored wrapper around a cached value.

    Attributes:
        value: The cached value (None for empty entries)
        has_value: True when value is meaningful

    Example:
        >>> CacheEntry.create(42)
        CacheEntry(value=42, has_value=True)
        >>> CacheEntry[int].model_validate({"value": 42, "has_value": True}).value
        42
    """
    model_config = {"frozen": True, "extra": "forbid"}

    value: T | None = None
    has_value: bool

    @classmethod
    def create(cls, value: Any) -> "CacheEntry":
        """Entry carrying a value."""
        return cls(value=value, has_value=True)

    @classmethod
    def empty(cls) -> "CacheEntry":
        """Entry that is present in the store but carries no value."""
        return cls(value=None, has_value=False)
