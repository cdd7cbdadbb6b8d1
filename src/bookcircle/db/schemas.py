"""Pydantic schemas and enums shared across the domain.

Request payloads accept camelCase keys (``bookId``, ``newHolderId``) as sent
by the web client, as well as snake_case keys.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    """Role of a member."""

    USER = "USER"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    """Admission status of a member."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"


class RequestStatus(str, Enum):
    """Lending request lifecycle states."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"


# Statuses that block a second request by the same member for the same book
ACTIVE_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.APPROVED.value,
    RequestStatus.DELIVERED.value,
)

# Statuses that commit the book to a single borrower
COMMITTED_STATUSES = (
    RequestStatus.APPROVED.value,
    RequestStatus.DELIVERED.value,
)


class NotificationType(str, Enum):
    """Kinds of in-app notifications."""

    LENDING_REQUEST = "LENDING_REQUEST"
    REQUEST_APPROVED = "REQUEST_APPROVED"
    REQUEST_REJECTED = "REQUEST_REJECTED"
    BOOK_DELIVERED = "BOOK_DELIVERED"
    BOOK_RETURNED = "BOOK_RETURNED"
    REQUEST_CANCELLED = "REQUEST_CANCELLED"
    BOOK_REMOVED = "BOOK_REMOVED"


class CamelModel(BaseModel):
    """Base model serialising to camelCase and accepting both key styles."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Users
# ============================================================================


class UserSync(CamelModel):
    """Profile fields sent by the client on login."""

    name: Optional[str] = Field(None, max_length=200)
    email: Optional[str] = Field(None, max_length=320)
    image: Optional[str] = None


class UserStatusUpdate(CamelModel):
    """Admin payload for changing a member's status."""

    status: UserStatus


class UserSummary(CamelModel):
    """Display fields of a member embedded in other responses."""

    id: str
    name: str
    image: Optional[str] = None


class UserResponse(CamelModel):
    """Schema for user responses."""

    id: str
    name: str
    email: str
    image: Optional[str]
    role: UserRole
    status: UserStatus
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Books
# ============================================================================


class BookCreate(CamelModel):
    """Schema for cataloguing a book."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=500)
    isbn: Optional[str] = Field(None, max_length=20)
    thumbnail: Optional[str] = None

    @field_validator("title", "author")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Reject whitespace-only values."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class BookUpdate(CamelModel):
    """Schema for editing a book. Holder and availability are not editable."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    author: Optional[str] = Field(None, min_length=1, max_length=500)
    isbn: Optional[str] = Field(None, max_length=20)
    thumbnail: Optional[str] = None

    @field_validator("title", "author")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        """Reject whitespace-only values."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class BookTransfer(CamelModel):
    """Payload for a direct hand-over."""

    new_holder_id: str = Field(..., min_length=1)


class BookResponse(CamelModel):
    """Schema for book responses with owner and holder display data."""

    id: str
    title: str
    author: str
    isbn: Optional[str]
    thumbnail: Optional[str]
    owner_id: str
    current_holder_id: str
    is_available: bool
    created_at: datetime
    updated_at: datetime

    owner: Optional[UserSummary] = None
    current_holder: Optional[UserSummary] = None


class UserProfile(UserResponse):
    """A member together with the books they own and hold."""

    owned_books: list[BookResponse] = []
    held_books: list[BookResponse] = []


# ============================================================================
# Lending requests
# ============================================================================


class LendingRequestCreate(CamelModel):
    """Payload for asking to borrow a book."""

    book_id: str = Field(..., min_length=1)


class LendingRequestResponse(CamelModel):
    """Schema for lending request responses with joined display data."""

    id: str
    book_id: str
    requester_id: str
    status: RequestStatus
    created_at: datetime
    updated_at: datetime

    book: Optional[BookResponse] = None
    requester: Optional[UserSummary] = None


# ============================================================================
# Notifications
# ============================================================================


class NotificationResponse(CamelModel):
    """Schema for notification responses."""

    id: str
    user_id: str
    message: str
    type: NotificationType
    is_read: bool
    created_at: datetime
