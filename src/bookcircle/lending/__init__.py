"""Book lending workflow module.

Provides functionality for:
- Asking to borrow a book from another member
- Owner approval, rejection, delivery and return
- Requester cancellation
- Listing requests made and requests received
"""

from .manager import LendingManager
from .states import TERMINAL_STATUSES, TRANSITIONS, Action, next_status

__all__ = [
    "LendingManager",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "Action",
    "next_status",
]
