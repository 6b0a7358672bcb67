"""
Success-Signalling Result Type

Handlers return Result[T] so behaviors can tell a successful response from
a failed one without exceptions. The read path only caches responses whose
is_success is True; the write path only invalidates after a success.

Result is a pydantic generic model, so a cached Result[TodoDto] comes back
from the store as a Result[TodoDto], not as a dict.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, model_validator

T = TypeVar("T")
U = TypeVar("U")


class ErrorType(str, Enum):
    """Broad category of a failed result."""
    FAILURE = "failure"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"


class ResultError(BaseModel):
    """
    Describes why an operation failed.

    Attributes:
        code: Stable machine-readable code (e.g. "todos.not_found")
        message: Human-readable description
        type: Error category
    """
    model_config = {"frozen": True}

    code: str
    message: str
    type: ErrorType = ErrorType.FAILURE


class Result(BaseModel, Generic[T]):
    """
    Outcome of a handler: either a value or a ResultError.

    Usage:
        return Result.success(todo)
        return Result.failure(ResultError(code="todos.not_found", message="..."))
    """
    model_config = {"frozen": True}

    is_success: bool
    value: T | None = None
    error: ResultError | None = None

    @model_validator(mode="after")
    def check_consistency(self):
        if self.is_success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.is_success and self.error is None:
            raise ValueError("A failed result must carry an error")
        return self

    @property
    def is_failure(self) -> bool:
        return not self.is_success

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(is_success=True, value=value)

    @classmethod
    def failure(cls, error: ResultError) -> "Result":
        return cls(is_success=False, error=error)

    def match(self, on_success: Callable[[T], U], on_failure: Callable[[ResultError], U]) -> U:
        return on_success(self.value) if self.is_success else on_failure(self.error)

    def map(self, mapper: Callable[[T], Any]) -> "Result":
        if self.is_failure:
            return Result.failure(self.error)
        return Result.success(mapper(self.value))

    def bind(self, binder: Callable[[T], "Result"]) -> "Result":
        if self.is_failure:
            return Result.failure(self.error)
        return binder(self.value)
