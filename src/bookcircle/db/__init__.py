"""Database module for local SQLite storage."""

from .models import Base, Book, LendingRequest, Notification, User
from .schemas import (
    BookCreate,
    BookResponse,
    BookUpdate,
    LendingRequestResponse,
    NotificationType,
    RequestStatus,
    UserRole,
    UserStatus,
)
from .sqlite import Database

__all__ = [
    "Base",
    "Book",
    "LendingRequest",
    "Notification",
    "User",
    "BookCreate",
    "BookResponse",
    "BookUpdate",
    "LendingRequestResponse",
    "NotificationType",
    "RequestStatus",
    "UserRole",
    "UserStatus",
    "Database",
]
