from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class TransportError(DomainError):
    """Raised when the backend cannot be reached or its answer cannot be decoded."""


class BackendRejection(DomainError):
    """Raised when the backend answers with an HTTP error status."""

    def __init__(self, status: int, message: str, data: Optional[Any] = None):
        super().__init__(message)
        self.status = int(status)
        self.message = message
        self.data = data


class RelayError(DomainError):
    """Raised when the cross-process relay cannot store or publish a record."""


class StateConflict(DomainError):
    """Local belief about the active entry disagrees with the backend."""

    def __init__(self, message: str, *, entry_id: Optional[int] = None, room_id: Optional[int] = None):
        super().__init__(message)
        self.entry_id = entry_id
        self.room_id = room_id
