"""Tests for the pydantic schemas."""

from datetime import datetime, timezone

from bookcircle.db.schemas import (
    BookResponse,
    BookTransfer,
    LendingRequestCreate,
    RequestStatus,
    UserSummary,
)


class TestAliases:
    """Tests for camelCase payloads."""

    def test_accepts_camel_case(self):
        assert LendingRequestCreate.model_validate({"bookId": "b1"}).book_id == "b1"
        assert BookTransfer.model_validate({"newHolderId": "u2"}).new_holder_id == "u2"

    def test_accepts_snake_case(self):
        assert LendingRequestCreate.model_validate({"book_id": "b1"}).book_id == "b1"

    def test_dumps_camel_case(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        book = BookResponse(
            id="b1",
            title="Dune",
            author="Frank Herbert",
            isbn=None,
            thumbnail=None,
            owner_id="u1",
            current_holder_id="u1",
            is_available=True,
            created_at=now,
            updated_at=now,
            owner=UserSummary(id="u1", name="Olivia"),
        )

        data = book.model_dump(mode="json", by_alias=True)

        assert data["ownerId"] == "u1"
        assert data["currentHolderId"] == "u1"
        assert data["isAvailable"] is True
        assert data["createdAt"] == "2024-05-01T12:00:00Z"
        assert data["owner"] == {"id": "u1", "name": "Olivia", "image": None}


class TestEnums:
    def test_request_status_values(self):
        assert [s.value for s in RequestStatus] == [
            "PENDING",
            "APPROVED",
            "REJECTED",
            "DELIVERED",
            "RETURNED",
            "CANCELLED",
        ]
