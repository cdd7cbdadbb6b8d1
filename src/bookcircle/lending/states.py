"""Lending request state machine.

    (none) --create--> PENDING
    PENDING --approve--> APPROVED
    PENDING --reject--> REJECTED
    PENDING --cancel--> CANCELLED
    APPROVED --deliver--> DELIVERED
    APPROVED --cancel--> CANCELLED
    DELIVERED --return--> RETURNED

REJECTED, CANCELLED and RETURNED are terminal.
"""

from enum import Enum
from typing import NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import Book, LendingRequest
from ..db.schemas import COMMITTED_STATUSES, RequestStatus
from ..errors import InvalidState


class Action(str, Enum):
    """Transitions a member can trigger on a request."""

    APPROVE = "approve"
    REJECT = "reject"
    DELIVER = "deliver"
    RETURN = "return"
    CANCEL = "cancel"


class Transition(NamedTuple):
    sources: tuple[RequestStatus, ...]
    target: RequestStatus


TRANSITIONS: dict[Action, Transition] = {
    Action.APPROVE: Transition((RequestStatus.PENDING,), RequestStatus.APPROVED),
    Action.REJECT: Transition((RequestStatus.PENDING,), RequestStatus.REJECTED),
    Action.DELIVER: Transition((RequestStatus.APPROVED,), RequestStatus.DELIVERED),
    Action.RETURN: Transition((RequestStatus.DELIVERED,), RequestStatus.RETURNED),
    Action.CANCEL: Transition(
        (RequestStatus.PENDING, RequestStatus.APPROVED), RequestStatus.CANCELLED
    ),
}

TERMINAL_STATUSES = frozenset(
    {RequestStatus.REJECTED, RequestStatus.RETURNED, RequestStatus.CANCELLED}
)


def next_status(action: Action, current: str) -> RequestStatus:
    """Return the status reached by applying ``action`` to ``current``.

    Raises:
        InvalidState: If the action is not legal from the current status
    """
    transition = TRANSITIONS[action]
    if RequestStatus(current) not in transition.sources:
        required = " or ".join(s.value for s in transition.sources)
        raise InvalidState(
            f"Only {required} requests can be {_past_tense(action)} "
            f"(request is {current})",
            details={"required": [s.value for s in transition.sources], "current": current},
        )
    return transition.target


def _past_tense(action: Action) -> str:
    return {
        Action.APPROVE: "approved",
        Action.REJECT: "rejected",
        Action.DELIVER: "marked as delivered",
        Action.RETURN: "marked as returned",
        Action.CANCEL: "cancelled",
    }[action]


# ============================================================================
# Row-level guards
# ============================================================================


def lock_book(session: Session, book_id: str) -> Optional[Book]:
    """Load a book with a row lock held until the session commits."""
    stmt = select(Book).where(Book.id == book_id).with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def find_committed_request(
    session: Session,
    book_id: str,
    exclude_id: Optional[str] = None,
    statuses: tuple[str, ...] = COMMITTED_STATUSES,
) -> Optional[LendingRequest]:
    """Find another request that has the book promised or handed over."""
    stmt = select(LendingRequest).where(
        LendingRequest.book_id == book_id,
        LendingRequest.status.in_(statuses),
    )
    if exclude_id is not None:
        stmt = stmt.where(LendingRequest.id != exclude_id)
    return session.execute(stmt.limit(1)).scalar_one_or_none()
