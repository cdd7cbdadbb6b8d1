"""SQLAlchemy ORM models.

Tables:
- users: Members, keyed by their external identity id
- books: Catalogued books with owner and current holder
- lending_requests: Borrow requests and their lifecycle status
- notifications: In-app notifications
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .schemas import RequestStatus, UserRole, UserStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utcnow() -> str:
    """Current UTC time as an ISO string."""
    return datetime.now(timezone.utc).isoformat()


class User(Base):
    """User model - a member of the circle."""

    __tablename__ = "users"

    # External identity id issued by the auth provider
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), default="")
    email: Mapped[str] = mapped_column(String(320), default="", index=True)
    image: Mapped[Optional[str]] = mapped_column(Text)
    role: Mapped[str] = mapped_column(String(10), default=UserRole.USER.value)
    status: Mapped[str] = mapped_column(
        String(10), default=UserStatus.PENDING.value, index=True
    )

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    owned_books: Mapped[list["Book"]] = relationship(
        "Book", foreign_keys="Book.owner_id", back_populates="owner"
    )
    held_books: Mapped[list["Book"]] = relationship(
        "Book", foreign_keys="Book.current_holder_id", back_populates="current_holder"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class Book(Base):
    """Book model - a physical copy owned by one member."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    isbn: Mapped[Optional[str]] = mapped_column(String(20))
    thumbnail: Mapped[Optional[str]] = mapped_column(Text)  # URL

    # Owner never changes; holder moves with deliveries and returns
    owner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    current_holder_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    owner: Mapped["User"] = relationship(
        "User", foreign_keys=[owner_id], back_populates="owned_books"
    )
    current_holder: Mapped["User"] = relationship(
        "User", foreign_keys=[current_holder_id], back_populates="held_books"
    )
    requests: Mapped[list["LendingRequest"]] = relationship(
        "LendingRequest",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', holder={self.current_holder_id})>"


_ACTIVE_SQL = "status IN ('PENDING', 'APPROVED', 'DELIVERED')"
_COMMITTED_SQL = "status IN ('APPROVED', 'DELIVERED')"


class LendingRequest(Base):
    """Lending request model - one member asking to borrow one book."""

    __tablename__ = "lending_requests"
    __table_args__ = (
        # At most one committed borrower per book
        Index(
            "uq_lending_requests_committed_book",
            "book_id",
            unique=True,
            sqlite_where=text(_COMMITTED_SQL),
            postgresql_where=text(_COMMITTED_SQL),
        ),
        # At most one active request per member and book
        Index(
            "uq_lending_requests_active_requester",
            "book_id",
            "requester_id",
            unique=True,
            sqlite_where=text(_ACTIVE_SQL),
            postgresql_where=text(_ACTIVE_SQL),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    book_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requester_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=RequestStatus.PENDING.value, index=True
    )

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow, index=True)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow, onupdate=utcnow)

    book: Mapped["Book"] = relationship("Book", back_populates="requests")
    requester: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<LendingRequest(id={self.id}, book_id={self.book_id}, status={self.status})>"


class Notification(Base):
    """Notification model - in-app messages for a member."""

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=False, index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow, index=True)

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type})>"
