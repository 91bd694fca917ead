"""
Custom exceptions for the transcript task-graph pipeline.

Every failure a caller can observe is one of these types; the HTTP layer maps
each of them to a status code.
"""

from typing import Any, Optional


class TaskGraphError(Exception):
    """Base exception for all pipeline errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(TaskGraphError):
    """An extracted task record violates the task contract."""

    status_code = 400

    def __init__(self, message: str, index: Optional[int] = None, field: Optional[str] = None) -> None:
        """Initialize with the failing record index and field."""
        details: dict[str, Any] = {}
        if index is not None:
            details["index"] = index
        if field is not None:
            details["field"] = field
        super().__init__(message, details)
        self.index = index
        self.field = field


class ProviderError(TaskGraphError):
    """The extraction provider failed, timed out or returned unusable output."""

    status_code = 502


class PersistenceError(TaskGraphError):
    """Reading from or writing to durable storage failed."""

    status_code = 500


class NotFoundError(TaskGraphError):
    """A requested resource does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: str) -> None:
        """Initialize with resource type and identifier."""
        super().__init__(f"{resource} '{identifier}' not found", {"resource": resource, "id": identifier})


class GraphInvariantError(TaskGraphError):
    """The dependency graph handed to the cycle detector is not closed."""

    status_code = 500
