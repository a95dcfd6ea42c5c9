from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthorizationError(DomainError):
    """Raised when the caller lacks the capability for an action."""


class NotFoundError(DomainError):
    """Raised when a session or record cannot be located."""


class MalformedRecordError(DomainError):
    """A record cannot take part in aggregation (missing or bad date).

    Absorbed by the grouping engine and only logged.
    """

    def __init__(self, record_id: str, reason: str):
        super().__init__(f"Record {record_id!r} is malformed: {reason}")
        self.record_id = record_id
        self.reason = reason


class StoreWriteError(DomainError):
    """A single create/update/delete against the record store failed."""

    def __init__(self, message: str, *, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class AggregateError(DomainError):
    """One or more writes of a concurrent batch failed.

    Writes that succeeded are not rolled back; ``succeeded`` tells the caller
    how many of ``total`` went through so it can retry the remainder.
    """

    def __init__(self, operation: str, *, succeeded: int, errors: Sequence[StoreWriteError]):
        self.operation = operation
        self.succeeded = int(succeeded)
        self.errors = list(errors)
        self.failed = len(self.errors)
        super().__init__(f"{self.succeeded} of {self.total} {operation} operations succeeded")

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


class FeedError(DomainError):
    """The live subscription itself failed. Terminal for the owning view."""
