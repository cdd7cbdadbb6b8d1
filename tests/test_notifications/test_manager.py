"""Tests for NotificationManager."""

import pytest

from bookcircle.db.schemas import NotificationType
from bookcircle.errors import NotFound
from bookcircle.notifications import NotificationEvent


@pytest.fixture
def inbox(dispatcher, owner):
    """Three notifications for the owner."""
    for i in range(3):
        dispatcher.publish(
            NotificationEvent(owner, f"Message {i}", NotificationType.LENDING_REQUEST)
        )
    return owner


class TestNotificationManager:
    """Tests for listing and read state."""

    def test_list_for_user_newest_first(self, notifications, inbox):
        listed = notifications.list_for_user(inbox)

        assert [n.message for n in listed] == ["Message 2", "Message 1", "Message 0"]
        assert all(not n.is_read for n in listed)

    def test_list_is_per_user(self, notifications, inbox, borrower):
        assert notifications.list_for_user(borrower) == []

    def test_mark_read(self, notifications, inbox):
        first = notifications.list_for_user(inbox)[0]

        marked = notifications.mark_read(first.id, inbox)

        assert marked.is_read is True
        assert notifications.unread_count(inbox) == 2

    def test_mark_read_other_user(self, notifications, inbox, borrower):
        """Test that members cannot touch someone else's notifications."""
        first = notifications.list_for_user(inbox)[0]

        with pytest.raises(NotFound):
            notifications.mark_read(first.id, borrower)

    def test_mark_read_missing(self, notifications, owner):
        with pytest.raises(NotFound):
            notifications.mark_read("no-such-notification", owner)

    def test_mark_all_read(self, notifications, inbox):
        assert notifications.mark_all_read(inbox) == 3
        assert notifications.unread_count(inbox) == 0
        assert notifications.mark_all_read(inbox) == 0
