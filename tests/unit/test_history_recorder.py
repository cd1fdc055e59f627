"""Unit tests for HistoryRecorder and history value rendering."""

from datetime import datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.ticketing.models import HistoryActionType, TicketPriority
from src.ticketing.services import HistoryRecorder
from src.ticketing.services.history_service import stringify

pytestmark = pytest.mark.unit


@pytest.fixture
def history_repo() -> MagicMock:
    return MagicMock()


@pytest.fixture
def recorder(history_repo) -> HistoryRecorder:
    return HistoryRecorder(history_repo)


class TestStringify:
    """History values are stored as strings."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, None),
            ("text", "text"),
            (TicketPriority.HIGH, "high"),
            (datetime(2026, 3, 1, 12, 30), "2026-03-01T12:30:00"),
            (["a", "b"], "a,b"),
            ([], ""),
            (3, "3"),
        ],
    )
    def test_stringify(self, value, expected):
        assert stringify(value) == expected


class TestRecord:
    """Tests for record()."""

    def test_record_adds_entry(self, recorder, history_repo):
        ticket_id = uuid4()

        entry = recorder.record(
            ticket_id, "u1", "Assignment", None, "u2", HistoryActionType.ASSIGNED
        )

        history_repo.add.assert_called_once_with(entry)
        assert entry.ticket_id == ticket_id
        assert entry.changed_by == "u1"
        assert entry.old_value is None
        assert entry.new_value == "u2"
        assert entry.action_type == "assigned"

    def test_record_entries_delegates(self, recorder, history_repo):
        entries = [MagicMock(), MagicMock()]

        assert recorder.record_entries(entries) == entries
        history_repo.add_many.assert_called_once_with(entries)


class TestRecordChanges:
    """Tests for record_changes()."""

    def test_one_entry_per_changed_field(self, recorder, history_repo):
        changed_at = datetime(2026, 1, 1)
        old = {"title": "Old", "priority": "low", "tags": ["x"], "category": "bug"}
        new = {
            "title": "New",
            "priority": TicketPriority.HIGH,
            "tags": ["x"],
            "category": "bug",
        }

        entries = recorder.record_changes(uuid4(), "u1", old, new, changed_at=changed_at)

        by_field = {e.field_name: e for e in entries}
        assert set(by_field) == {"Title", "Priority"}
        assert by_field["Title"].action_type == HistoryActionType.UPDATED.value
        assert by_field["Priority"].action_type == HistoryActionType.PRIORITY_CHANGED.value
        assert by_field["Priority"].old_value == "low"
        assert by_field["Priority"].new_value == "high"
        assert all(e.changed_at == changed_at for e in entries)
        assert history_repo.add.call_count == 2

    def test_no_changes_no_entries(self, recorder, history_repo):
        entries = recorder.record_changes(uuid4(), "u1", {"title": "Same"}, {"title": "Same"})

        assert entries == []
        history_repo.add.assert_not_called()

    def test_cleared_due_date(self, recorder):
        due = datetime(2026, 5, 1)

        (entry,) = recorder.record_changes(uuid4(), "u1", {"due_date": due}, {"due_date": None})

        assert entry.field_name == "DueDate"
        assert entry.old_value == due.isoformat()
        assert entry.new_value is None
