"""Typed errors raised by the domain managers.

Each error carries a stable ``code`` and the HTTP status the API layer
responds with. Messages are meant to be shown to the member verbatim.
"""

from typing import Any, Optional


class BookCircleError(Exception):
    """Base exception for rejected operations."""

    code = "error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class Unauthenticated(BookCircleError):
    """Raised when no valid credential was supplied."""

    code = "not_authenticated"
    status_code = 401


class Forbidden(BookCircleError):
    """Raised when the caller lacks the role, status or ownership required."""

    code = "forbidden"
    status_code = 403


class NotFound(BookCircleError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"
    status_code = 404


class InvalidState(BookCircleError):
    """Raised when a transition is attempted from the wrong status."""

    code = "invalid_state"
    status_code = 400


class Conflict(BookCircleError):
    """Raised when a book is already committed to another borrower."""

    code = "conflict"
    status_code = 409


class SelfRequest(BookCircleError):
    """Raised when an owner asks to borrow their own book."""

    code = "self_request"
    status_code = 400


class DuplicateRequest(BookCircleError):
    """Raised when a member already has an active request for a book."""

    code = "duplicate_request"
    status_code = 400


class ValidationError(BookCircleError):
    """Raised for malformed input."""

    code = "validation_error"
    status_code = 400
