"""Tests for the ticket status state machine and in-place field updates."""

from itertools import product

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.ticketing.models import (
    HistoryActionType,
    Ticket,
    TicketPriority,
    TicketStatus,
    can_transition,
)
from tests.factories import TicketFactory

pytestmark = pytest.mark.unit

S = TicketStatus

EXPECTED_ALLOWED = {
    (S.OPEN, S.IN_PROGRESS),
    (S.OPEN, S.ON_HOLD),
    (S.OPEN, S.CLOSED),
    (S.IN_PROGRESS, S.REVIEW),
    (S.IN_PROGRESS, S.ON_HOLD),
    (S.IN_PROGRESS, S.CLOSED),
    (S.REVIEW, S.CLOSED),
    (S.REVIEW, S.IN_PROGRESS),
    (S.REVIEW, S.ON_HOLD),
    (S.ON_HOLD, S.IN_PROGRESS),
    (S.ON_HOLD, S.OPEN),
    (S.ON_HOLD, S.CLOSED),
    (S.CLOSED, S.OPEN),
}


class TestTransitionTable:
    """Every (current, target) pair is checked against the expected table."""

    @pytest.mark.parametrize(("current", "target"), list(product(S, S)))
    def test_transition_pair(self, current, target):
        assert can_transition(current, target) == ((current, target) in EXPECTED_ALLOWED)

    @pytest.mark.parametrize("status", list(S))
    def test_self_transition_is_never_allowed(self, status):
        assert can_transition(status, status) is False

    def test_closed_only_reopens(self):
        """A closed ticket can only go back to open."""
        ticket = TicketFactory.with_status(S.CLOSED)
        assert ticket.can_transition_to(S.OPEN)
        assert not ticket.can_transition_to(S.IN_PROGRESS)
        assert not ticket.can_transition_to(S.REVIEW)


class TestUpdateStatus:
    """Tests for Ticket.update_status."""

    def test_changes_status_and_returns_history(self):
        ticket = TicketFactory.build()

        entry = ticket.update_status(S.IN_PROGRESS, "u2")

        assert ticket.status == "in_progress"
        assert ticket.updated_by == "u2"
        assert ticket.updated_at is not None
        assert entry is not None
        assert entry.ticket_id == ticket.id
        assert entry.field_name == "Status"
        assert entry.old_value == "open"
        assert entry.new_value == "in_progress"
        assert entry.action_type_enum == HistoryActionType.STATUS_CHANGED
        assert entry.changed_at == ticket.updated_at

    def test_does_not_consult_transition_table(self):
        """Validation belongs to the caller; the model just applies the change."""
        ticket = TicketFactory.with_status(S.CLOSED)

        entry = ticket.update_status(S.REVIEW, "u1")

        assert entry is not None
        assert ticket.status_enum == S.REVIEW


class TestUpdatePriority:
    """Tests for Ticket.update_priority."""

    def test_changes_priority_and_returns_history(self):
        ticket = TicketFactory.build(priority=TicketPriority.LOW.value)

        entry = ticket.update_priority(TicketPriority.CRITICAL, "u3")

        assert ticket.priority_enum == TicketPriority.CRITICAL
        assert entry is not None
        assert entry.field_name == "Priority"
        assert entry.old_value == "low"
        assert entry.new_value == "critical"
        assert entry.action_type == HistoryActionType.PRIORITY_CHANGED.value


class TestSameValueIsNoOp:
    """Setting a field to its current value changes nothing."""

    @given(status=st.sampled_from(TicketStatus))
    def test_same_status(self, status):
        ticket = Ticket(project_id=TicketFactory.build().project_id, title="t", created_by="u1")
        ticket.status = status.value

        assert ticket.update_status(status, "u2") is None
        assert ticket.status == status.value
        assert ticket.updated_at is None
        assert ticket.updated_by is None

    @given(priority=st.sampled_from(TicketPriority))
    def test_same_priority(self, priority):
        ticket = Ticket(project_id=TicketFactory.build().project_id, title="t", created_by="u1")
        ticket.priority = priority.value

        assert ticket.update_priority(priority, "u2") is None
        assert ticket.priority == priority.value
        assert ticket.updated_at is None
