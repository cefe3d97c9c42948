"""Outcome of a mutating store operation.

A plain success flag cannot tell "nothing to remove" apart from "the store
is unreachable". OperationResult keeps that distinction while still
behaving as a boolean for callers that only care about success.
"""

from enum import Enum
from typing import Any

from pydantic import Field

from .base import CacheBaseModel


class OperationStatus(str, Enum):
    """Status of a store operation."""

    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    STORE_ERROR = "STORE_ERROR"


class OperationResult(CacheBaseModel):
    """Result of a mutating facade operation.

    Truthiness follows ``ok``: a NOT_FOUND result is still a completed
    call, only STORE_ERROR is falsy.
    """

    operation: str = Field(description="Facade operation name, e.g. 'set'")
    key: str = Field(description="Key the operation targeted")
    status: OperationStatus
    value: Any = Field(
        default=None,
        description="Operation-specific payload (previous value, generated key, count)",
    )
    error: str | None = Field(default=None, description="Store error message")

    @property
    def ok(self) -> bool:
        return self.status != OperationStatus.STORE_ERROR

    @property
    def found(self) -> bool:
        return self.status == OperationStatus.OK

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, operation: str, key: str, value: Any = None) -> "OperationResult":
        return cls(operation=operation, key=key, status=OperationStatus.OK, value=value)

    @classmethod
    def not_found(cls, operation: str, key: str, value: Any = None) -> "OperationResult":
        return cls(
            operation=operation,
            key=key,
            status=OperationStatus.NOT_FOUND,
            value=value,
        )

    @classmethod
    def failure(cls, operation: str, key: str, error: str) -> "OperationResult":
        return cls(
            operation=operation,
            key=key,
            status=OperationStatus.STORE_ERROR,
            error=error,
        )
