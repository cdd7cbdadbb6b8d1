"""ORM to response conversions.

Must be called while the owning session is open so that relationships
can still be loaded.
"""

from typing import Optional

from .models import Book, LendingRequest, User
from .schemas import (
    BookResponse,
    LendingRequestResponse,
    UserProfile,
    UserResponse,
    UserSummary,
)


def to_user_summary(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=user.id, name=user.name, image=user.image)


def to_user_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


def to_book_response(book: Book, with_people: bool = True) -> BookResponse:
    response = BookResponse(
        id=book.id,
        title=book.title,
        author=book.author,
        isbn=book.isbn,
        thumbnail=book.thumbnail,
        owner_id=book.owner_id,
        current_holder_id=book.current_holder_id,
        is_available=book.is_available,
        created_at=book.created_at,
        updated_at=book.updated_at,
    )
    if with_people:
        response.owner = to_user_summary(book.owner)
        response.current_holder = to_user_summary(book.current_holder)
    return response


def to_request_response(request: LendingRequest) -> LendingRequestResponse:
    return LendingRequestResponse(
        id=request.id,
        book_id=request.book_id,
        requester_id=request.requester_id,
        status=request.status,
        created_at=request.created_at,
        updated_at=request.updated_at,
        book=to_book_response(request.book),
        requester=to_user_summary(request.requester),
    )


def to_user_profile(user: User) -> UserProfile:
    return UserProfile(
        **to_user_response(user).model_dump(),
        owned_books=[to_book_response(b) for b in user.owned_books],
        held_books=[to_book_response(b) for b in user.held_books],
    )
