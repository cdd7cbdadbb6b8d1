"""Catalog manager for book records and ownership rules."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..db.convert import to_book_response
from ..db.models import Book, LendingRequest, User
from ..db.schemas import (
    BookCreate,
    BookResponse,
    BookUpdate,
    NotificationType,
    RequestStatus,
)
from ..db.sqlite import Database
from ..errors import Conflict, Forbidden, NotFound, SelfRequest
from ..lending.manager import display_name
from ..lending.states import find_committed_request, lock_book
from ..notifications.dispatcher import NotificationDispatcher, NotificationEvent

logger = logging.getLogger(__name__)


class CatalogManager:
    """Manages the books members own."""

    def __init__(self, db: Database, dispatcher: Optional[NotificationDispatcher] = None):
        """Initialize the catalog manager.

        Args:
            db: Database instance
            dispatcher: Outbound notification queue for removal notices
        """
        self.db = db
        self.dispatcher = dispatcher

    def list_books(self, exclude_owner_id: Optional[str] = None) -> list[BookResponse]:
        """List all books with owner and holder display data, newest first.

        Args:
            exclude_owner_id: Leave out books owned by this member

        Returns:
            List of books
        """
        with self.db.get_session() as session:
            stmt = select(Book).options(
                selectinload(Book.owner), selectinload(Book.current_holder)
            )
            if exclude_owner_id:
                stmt = stmt.where(Book.owner_id != exclude_owner_id)
            stmt = stmt.order_by(Book.created_at.desc())

            books = session.execute(stmt).scalars().all()
            return [to_book_response(b) for b in books]

    def get_book(self, book_id: str) -> BookResponse:
        """Get a book by ID.

        Raises:
            NotFound: If the book does not exist
        """
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None:
                raise NotFound("Book not found")
            return to_book_response(book)

    def create_book(self, data: BookCreate, owner_id: str) -> BookResponse:
        """Catalog a book. The owner starts as its holder.

        Args:
            data: Book fields
            owner_id: Member who owns the copy

        Returns:
            Created book
        """
        with self.db.get_session() as session:
            if session.get(User, owner_id) is None:
                raise NotFound("User not found")

            book = Book(
                title=data.title,
                author=data.author,
                isbn=data.isbn,
                thumbnail=data.thumbnail,
                owner_id=owner_id,
                current_holder_id=owner_id,
                is_available=True,
            )
            session.add(book)
            session.flush()
            response = to_book_response(book)

        logger.info("Book %s '%s' added by %s", response.id, response.title, owner_id)
        return response

    def update_book(self, book_id: str, data: BookUpdate, actor_id: str) -> BookResponse:
        """Edit a book's descriptive fields. Owner only.

        Raises:
            NotFound: If the book does not exist
            Forbidden: If the actor is not the owner
        """
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None:
                raise NotFound("Book not found")
            if book.owner_id != actor_id:
                raise Forbidden("Only the owner can edit this book")

            update_data = data.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                # title and author cannot be cleared
                if field in ("title", "author") and value is None:
                    continue
                setattr(book, field, value)

            session.flush()
            return to_book_response(book)

    def delete_book(self, book_id: str, actor_id: str) -> None:
        """Remove a book from the catalog. Owner only.

        A book that is promised to or held by a borrower cannot be removed.
        Members with a PENDING request are told the book is gone, and the
        book's request history is deleted with it.

        Raises:
            NotFound: If the book does not exist
            Forbidden: If the actor is not the owner
            Conflict: If a request on the book is APPROVED or DELIVERED
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            book = lock_book(session, book_id)
            if book is None:
                raise NotFound("Book not found")
            if book.owner_id != actor_id:
                raise Forbidden("Only the owner can delete this book")

            if find_committed_request(session, book_id):
                raise Conflict(
                    "This book is lent out or promised to a member; "
                    "finish or cancel that request first"
                )

            pending = session.execute(
                select(LendingRequest).where(
                    LendingRequest.book_id == book_id,
                    LendingRequest.status == RequestStatus.PENDING.value,
                )
            ).scalars().all()
            for request in pending:
                events.append(
                    NotificationEvent(
                        user_id=request.requester_id,
                        message=f'"{book.title}" was removed from the library by '
                        f"{display_name(book.owner)}",
                        type=NotificationType.BOOK_REMOVED,
                    )
                )

            session.delete(book)

        logger.info("Book %s deleted by %s (%d pending requests dropped)",
                    book_id, actor_id, len(events))
        if self.dispatcher is not None:
            self.dispatcher.publish_all(events)

    def transfer_book(self, book_id: str, new_holder_id: str, actor_id: str) -> BookResponse:
        """Hand a book directly to another member.

        This is a shortcut through the lending workflow: it records a
        DELIVERED request for the new holder (reusing their PENDING or
        APPROVED request when they have one), so the book is later taken
        back with the regular return transition.

        Raises:
            NotFound: If the book or the new holder does not exist
            Forbidden: If the actor is not both owner and current holder, or
                the new holder has not been approved yet
            SelfRequest: If the new holder is the owner
            Conflict: If the book is committed to someone else
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            book = lock_book(session, book_id)
            if book is None:
                raise NotFound("Book not found")
            if book.current_holder_id != actor_id or book.owner_id != actor_id:
                raise Forbidden("Only the owner holding this book can transfer it")

            new_holder = session.get(User, new_holder_id)
            if new_holder is None:
                raise NotFound("User not found")
            if new_holder_id == book.owner_id:
                raise SelfRequest("The owner already holds this book")
            if not new_holder.is_active:
                raise Forbidden("Books can only be handed to approved members")

            committed = find_committed_request(session, book_id)
            if committed is not None and committed.requester_id != new_holder_id:
                raise Conflict("This book is already committed to another member")

            request = session.execute(
                select(LendingRequest).where(
                    LendingRequest.book_id == book_id,
                    LendingRequest.requester_id == new_holder_id,
                    LendingRequest.status.in_(
                        (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)
                    ),
                )
            ).scalar_one_or_none()
            if request is None:
                request = LendingRequest(book_id=book_id, requester_id=new_holder_id)
                session.add(request)

            request.status = RequestStatus.DELIVERED.value
            book.current_holder_id = new_holder_id
            book.is_available = False
            session.flush()

            events.append(
                NotificationEvent(
                    user_id=new_holder_id,
                    message=f'{display_name(book.owner)} handed you "{book.title}". Enjoy!',
                    type=NotificationType.BOOK_DELIVERED,
                )
            )
            response = to_book_response(book)

        logger.info("Book %s transferred to %s by %s", book_id, new_holder_id, actor_id)
        if self.dispatcher is not None:
            self.dispatcher.publish_all(events)
        return response
