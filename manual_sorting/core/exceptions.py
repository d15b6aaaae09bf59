from __future__ import annotations

"""Exception classes for order management.

Low-level document helpers raise these; services and the store catch them
and degrade to "skip this operation, keep the system usable". None of them
is meant to escape to the host application during normal operation.
"""

from typing import Optional


class OrderingError(Exception):
    """Base exception for all order-management errors.

    Carries the offending path (if any) and the underlying cause so that
    log lines can point at the exact entry that was skipped.
    """

    def __init__(self, message: str, path: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.path = path
        self.cause = cause

    def __str__(self) -> str:
        if self.path:
            return f"[Path: {self.path}] {super().__str__()}"
        return super().__str__()


class MissingParentError(OrderingError):
    """Raised when the parent sequence of a path is not tracked yet."""

    def __init__(self, message: str, path: Optional[str] = None,
                 parent: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, path, cause)
        self.parent = parent


class DuplicateDestinationError(OrderingError):
    """Raised when a move would insert a path its destination already holds."""

    def __init__(self, message: str, path: Optional[str] = None,
                 destination: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, path, cause)
        self.destination = destination


class OrderStoreError(OrderingError):
    """Raised when persisted order data cannot be read or written."""
    pass
