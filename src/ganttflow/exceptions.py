"""Exception types raised by ganttflow and its collaborators."""

from typing import Optional


class GanttError(Exception):
    """Base class for ganttflow errors."""

    pass


class ConfigurationError(GanttError):
    """Raised when settings cannot be parsed or are inconsistent."""

    pass


class BackendError(GanttError):
    """
    Raised by a collaborator when a remote mutation fails.

    Attributes:
        status: HTTP-like status code, or None for transport failures.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class RelationshipError(BackendError):
    """Validation failure for a relationship mutation (duplicate, cycle...)."""

    pass


class BatchUpdateError(BackendError):
    """A batch update did not apply to every task."""

    pass
