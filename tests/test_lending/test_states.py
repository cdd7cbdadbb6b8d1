"""Tests for the lending state machine."""

import pytest

from bookcircle.db.schemas import RequestStatus
from bookcircle.errors import InvalidState
from bookcircle.lending import TERMINAL_STATUSES, TRANSITIONS, Action, next_status


class TestNextStatus:
    """Tests for next_status."""

    @pytest.mark.parametrize(
        "action,current,expected",
        [
            (Action.APPROVE, "PENDING", RequestStatus.APPROVED),
            (Action.REJECT, "PENDING", RequestStatus.REJECTED),
            (Action.CANCEL, "PENDING", RequestStatus.CANCELLED),
            (Action.DELIVER, "APPROVED", RequestStatus.DELIVERED),
            (Action.CANCEL, "APPROVED", RequestStatus.CANCELLED),
            (Action.RETURN, "DELIVERED", RequestStatus.RETURNED),
        ],
    )
    def test_legal_transitions(self, action, current, expected):
        assert next_status(action, current) == expected

    @pytest.mark.parametrize(
        "action,current",
        [
            (Action.APPROVE, "APPROVED"),
            (Action.REJECT, "DELIVERED"),
            (Action.DELIVER, "PENDING"),
            (Action.RETURN, "APPROVED"),
            (Action.CANCEL, "DELIVERED"),
        ],
    )
    def test_illegal_transitions(self, action, current):
        with pytest.raises(InvalidState) as exc_info:
            next_status(action, current)
        assert exc_info.value.details["current"] == current

    def test_cancel_message_names_both_sources(self):
        """Test the error names every status cancel accepts."""
        with pytest.raises(InvalidState) as exc_info:
            next_status(Action.CANCEL, "RETURNED")
        assert "PENDING or APPROVED" in exc_info.value.message

    @pytest.mark.parametrize("status", sorted(s.value for s in TERMINAL_STATUSES))
    def test_terminal_statuses_have_no_exit(self, status):
        """Test that no action leaves a terminal status."""
        for action in Action:
            with pytest.raises(InvalidState):
                next_status(action, status)

    def test_every_target_is_a_status(self):
        targets = {t.target for t in TRANSITIONS.values()}
        assert targets == set(RequestStatus) - {RequestStatus.PENDING}
