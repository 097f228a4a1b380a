"""
Typed results for chain queries.

Every chain query returns a QueryResult instead of raising, so callers can
tell a real zero apart from a value the chain could not provide.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from .common import QueryStatus

T = TypeVar("T")


class QueryResult(BaseModel, Generic[T]):
    status: QueryStatus
    value: Optional[T] = None     # Default value when status is not OK
    reason: Optional[str] = None  # Why the value is missing

    @classmethod
    def ok(cls, value: T) -> "QueryResult[T]":
        return cls(status=QueryStatus.OK, value=value)

    @classmethod
    def empty(cls, default: Optional[T], reason: str) -> "QueryResult[T]":
        return cls(status=QueryStatus.EMPTY, value=default, reason=reason)

    @classmethod
    def error(cls, default: Optional[T], reason: str) -> "QueryResult[T]":
        return cls(status=QueryStatus.ERROR, value=default, reason=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == QueryStatus.OK

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR

    def unwrap_or(self, default: T) -> T:
        """Returns the value if the query succeeded, otherwise `default`."""
        if self.is_ok and self.value is not None:
            return self.value
        return default
