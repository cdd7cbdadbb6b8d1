"""Lending manager: the request lifecycle and its effect on books."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..db.convert import to_request_response
from ..db.models import Book, LendingRequest, User
from ..db.schemas import (
    ACTIVE_STATUSES,
    LendingRequestResponse,
    NotificationType,
    RequestStatus,
)
from ..db.sqlite import Database
from ..errors import (
    BookCircleError,
    Conflict,
    DuplicateRequest,
    Forbidden,
    NotFound,
    SelfRequest,
)
from ..notifications.dispatcher import NotificationDispatcher, NotificationEvent
from ..notifications.mailer import (
    book_request_email,
    request_approved_email,
    request_rejected_email,
)
from .states import Action, find_committed_request, lock_book, next_status

logger = logging.getLogger(__name__)

_OWNER_VERBS = {
    Action.APPROVE: "approve",
    Action.REJECT: "reject",
    Action.DELIVER: "mark as delivered",
    Action.RETURN: "mark as returned",
}


def display_name(user: Optional[User]) -> str:
    """Name to show for a member in messages."""
    if user is None:
        return "A member"
    return user.name or user.email or "A member"


class LendingManager:
    """Manages lending requests between members."""

    def __init__(
        self,
        db: Database,
        dispatcher: Optional[NotificationDispatcher] = None,
        app_url: str = "http://localhost:3000",
    ):
        """Initialize lending manager.

        Args:
            db: Database instance
            dispatcher: Outbound notification queue (notifications are
                        skipped when None)
            app_url: Base URL of the web client, used in email links
        """
        self.db = db
        self.dispatcher = dispatcher
        self.app_url = app_url

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_request(self, book_id: str, requester_id: str) -> LendingRequestResponse:
        """Ask to borrow a book.

        Several members may hold PENDING requests for the same book; the
        book is only committed to one of them when the owner approves.

        Args:
            book_id: Book to borrow
            requester_id: Member asking for it

        Returns:
            The new PENDING request

        Raises:
            NotFound: If the book or requester does not exist
            SelfRequest: If the requester owns the book
            DuplicateRequest: If the requester already has an active request
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            book = lock_book(session, book_id)
            if book is None:
                raise NotFound("Book not found")

            requester = session.get(User, requester_id)
            if requester is None:
                raise NotFound("User not found")

            if book.owner_id == requester_id:
                raise SelfRequest("You cannot request your own book")

            existing = session.execute(
                select(LendingRequest).where(
                    LendingRequest.book_id == book_id,
                    LendingRequest.requester_id == requester_id,
                    LendingRequest.status.in_(ACTIVE_STATUSES),
                )
            ).scalar_one_or_none()
            if existing is not None:
                raise DuplicateRequest(
                    "You already have an active request for this book",
                    details={"existingRequestId": existing.id, "status": existing.status},
                )

            request = LendingRequest(
                book_id=book_id,
                requester_id=requester_id,
                status=RequestStatus.PENDING.value,
            )
            session.add(request)
            self._flush(
                session,
                DuplicateRequest("You already have an active request for this book"),
            )

            owner = book.owner
            events.append(
                NotificationEvent(
                    user_id=owner.id,
                    message=f'{display_name(requester)} wants to borrow "{book.title}"',
                    type=NotificationType.LENDING_REQUEST,
                    email=book_request_email(
                        owner.email,
                        display_name(owner),
                        display_name(requester),
                        book.title,
                        self.app_url,
                    ),
                )
            )
            response = to_request_response(request)

        logger.info("Request %s created by %s for book %s", response.id, requester_id, book_id)
        self._publish(events)
        return response

    # -------------------------------------------------------------------------
    # Owner transitions
    # -------------------------------------------------------------------------

    def approve(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Approve a PENDING request, committing the book to the requester.

        Raises:
            NotFound, Forbidden, InvalidState
            Conflict: If another request for the book is APPROVED or DELIVERED
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            request, book = self._load_as_owner(session, request_id, actor_id, Action.APPROVE)
            target = next_status(Action.APPROVE, request.status)

            if find_committed_request(session, book.id, exclude_id=request.id):
                raise Conflict("This book is already committed to another member")

            request.status = target.value
            self._flush(session, Conflict("This book is already committed to another member"))

            requester = request.requester
            events.append(
                NotificationEvent(
                    user_id=requester.id,
                    message=f'{display_name(book.owner)} approved your request for "{book.title}"',
                    type=NotificationType.REQUEST_APPROVED,
                    email=request_approved_email(
                        requester.email,
                        display_name(requester),
                        display_name(book.owner),
                        book.title,
                        self.app_url,
                    ),
                )
            )
            response = to_request_response(request)

        logger.info("Request %s approved by %s", request_id, actor_id)
        self._publish(events)
        return response

    def reject(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Reject a PENDING request."""
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            request, book = self._load_as_owner(session, request_id, actor_id, Action.REJECT)
            request.status = next_status(Action.REJECT, request.status).value
            session.flush()

            requester = request.requester
            events.append(
                NotificationEvent(
                    user_id=requester.id,
                    message=f'{display_name(book.owner)} declined your request for "{book.title}"',
                    type=NotificationType.REQUEST_REJECTED,
                    email=request_rejected_email(
                        requester.email,
                        display_name(requester),
                        display_name(book.owner),
                        book.title,
                        self.app_url,
                    ),
                )
            )
            response = to_request_response(request)

        logger.info("Request %s rejected by %s", request_id, actor_id)
        self._publish(events)
        return response

    def deliver(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Record that the owner handed the book to the requester.

        The status change and the holder change are written in one
        transaction.

        Raises:
            NotFound, Forbidden, InvalidState
            Conflict: If another request for the book is already DELIVERED
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            request, book = self._load_as_owner(session, request_id, actor_id, Action.DELIVER)
            target = next_status(Action.DELIVER, request.status)

            if find_committed_request(
                session,
                book.id,
                exclude_id=request.id,
                statuses=(RequestStatus.DELIVERED.value,),
            ):
                raise Conflict("This book is already lent to another member")

            request.status = target.value
            book.current_holder_id = request.requester_id
            book.is_available = False
            self._flush(session, Conflict("This book is already lent to another member"))

            events.append(
                NotificationEvent(
                    user_id=request.requester_id,
                    message=f'{display_name(book.owner)} handed you "{book.title}". Enjoy!',
                    type=NotificationType.BOOK_DELIVERED,
                )
            )
            response = to_request_response(request)

        logger.info("Request %s delivered, book %s now held by %s",
                    request_id, response.book_id, response.requester_id)
        self._publish(events)
        return response

    def return_book(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Record that the book came back to its owner.

        The status change and the holder change are written in one
        transaction.
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            request, book = self._load_as_owner(session, request_id, actor_id, Action.RETURN)
            request.status = next_status(Action.RETURN, request.status).value
            book.current_holder_id = book.owner_id
            book.is_available = True
            session.flush()

            events.append(
                NotificationEvent(
                    user_id=request.requester_id,
                    message=f'{display_name(book.owner)} marked "{book.title}" as returned',
                    type=NotificationType.BOOK_RETURNED,
                )
            )
            response = to_request_response(request)

        logger.info("Request %s returned, book %s back with its owner", request_id, response.book_id)
        self._publish(events)
        return response

    # -------------------------------------------------------------------------
    # Requester transitions
    # -------------------------------------------------------------------------

    def cancel(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Withdraw a PENDING or APPROVED request.

        The book was never marked unavailable before delivery, so nothing
        on the book changes.
        """
        events: list[NotificationEvent] = []
        with self.db.get_session() as session:
            request = session.get(LendingRequest, request_id)
            if request is None:
                raise NotFound("Request not found")
            book = lock_book(session, request.book_id)
            session.refresh(request)

            if request.requester_id != actor_id:
                raise Forbidden("Only the requester can cancel this request")

            request.status = next_status(Action.CANCEL, request.status).value
            session.flush()

            events.append(
                NotificationEvent(
                    user_id=book.owner_id,
                    message=f'{display_name(request.requester)} cancelled the request for "{book.title}"',
                    type=NotificationType.REQUEST_CANCELLED,
                )
            )
            response = to_request_response(request)

        logger.info("Request %s cancelled by %s", request_id, actor_id)
        self._publish(events)
        return response

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_request(self, request_id: str, actor_id: str) -> LendingRequestResponse:
        """Get a request visible to its requester or the book owner."""
        with self.db.get_session() as session:
            request = session.get(LendingRequest, request_id)
            if request is None:
                raise NotFound("Request not found")
            if actor_id not in (request.requester_id, request.book.owner_id):
                raise Forbidden("You are not part of this request")
            return to_request_response(request)

    def list_mine(self, requester_id: str) -> list[LendingRequestResponse]:
        """Requests a member made, newest first."""
        with self.db.get_session() as session:
            stmt = (
                select(LendingRequest)
                .where(LendingRequest.requester_id == requester_id)
                .options(
                    selectinload(LendingRequest.book).selectinload(Book.owner),
                    selectinload(LendingRequest.requester),
                )
                .order_by(LendingRequest.created_at.desc())
            )
            requests = session.execute(stmt).scalars().all()
            return [to_request_response(r) for r in requests]

    def list_for_my_books(self, owner_id: str) -> list[LendingRequestResponse]:
        """Requests other members made for an owner's books, newest first."""
        with self.db.get_session() as session:
            stmt = (
                select(LendingRequest)
                .join(Book, LendingRequest.book_id == Book.id)
                .where(Book.owner_id == owner_id)
                .options(
                    selectinload(LendingRequest.book).selectinload(Book.owner),
                    selectinload(LendingRequest.requester),
                )
                .order_by(LendingRequest.created_at.desc())
            )
            requests = session.execute(stmt).scalars().all()
            return [to_request_response(r) for r in requests]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_as_owner(
        self, session: Session, request_id: str, actor_id: str, action: Action
    ) -> tuple[LendingRequest, Book]:
        """Load a request and lock its book, checking the actor owns the book."""
        request = session.get(LendingRequest, request_id)
        if request is None:
            raise NotFound("Request not found")

        book = lock_book(session, request.book_id)
        # Re-read the status now that the book row is locked
        session.refresh(request)

        if book.owner_id != actor_id:
            raise Forbidden(f"Only the book owner can {_OWNER_VERBS[action]} this request")
        return request, book

    @staticmethod
    def _flush(session: Session, on_conflict: BookCircleError) -> None:
        """Flush pending writes, mapping unique index violations to ``on_conflict``."""
        try:
            session.flush()
        except IntegrityError as e:
            logger.warning("Integrity violation on flush: %s", e.orig)
            raise on_conflict from e

    def _publish(self, events: list[NotificationEvent]) -> None:
        if self.dispatcher is not None:
            self.dispatcher.publish_all(events)
