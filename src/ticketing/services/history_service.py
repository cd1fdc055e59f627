"""Append-only ticket change log."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from src.ticketing.models import HistoryActionType, TicketHistory
from src.ticketing.models.base import utc_now
from src.ticketing.repositories import TicketHistoryRepository

# Ticket attribute -> history field name
FIELD_NAMES: dict[str, str] = {
    "title": "Title",
    "description": "Description",
    "priority": "Priority",
    "category": "Category",
    "tags": "Tags",
    "due_date": "DueDate",
    "status": "Status",
}


def stringify(value: Any) -> str | None:
    """Render a field value the way it is stored in history."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list | tuple):
        return ",".join(str(v) for v in value)
    return str(value)


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return list(value)
    return value


class HistoryRecorder:
    """Builds history entries and adds them to the session.

    The recorder never commits: the orchestration service appends history in
    its own transaction after the mutation itself is committed.
    """

    def __init__(self, history_repo: TicketHistoryRepository):
        self.history_repo = history_repo

    def record(
        self,
        ticket_id: UUID,
        actor: str,
        field_name: str,
        old_value: Any,
        new_value: Any,
        action_type: HistoryActionType,
        changed_at: datetime | None = None,
    ) -> TicketHistory:
        """Append one entry."""
        entry = TicketHistory(
            ticket_id=ticket_id,
            changed_by=actor,
            changed_at=changed_at or utc_now(),
            field_name=field_name,
            old_value=stringify(old_value),
            new_value=stringify(new_value),
            action_type=action_type.value,
        )
        self.history_repo.add(entry)
        return entry

    def record_entries(self, entries: list[TicketHistory]) -> list[TicketHistory]:
        """Append entries already built (e.g. by the ticket state machine)."""
        self.history_repo.add_many(entries)
        return entries

    def record_changes(
        self,
        ticket_id: UUID,
        actor: str,
        old: dict[str, Any],
        new: dict[str, Any],
        changed_at: datetime | None = None,
    ) -> list[TicketHistory]:
        """Diff two field snapshots and append one entry per changed field.

        Fields whose value did not change produce no entry.
        """
        changed_at = changed_at or utc_now()
        entries = []
        for field, new_value in new.items():
            old_value = old.get(field)
            if _comparable(old_value) == _comparable(new_value):
                continue
            action = (
                HistoryActionType.PRIORITY_CHANGED
                if field == "priority"
                else HistoryActionType.UPDATED
            )
            entries.append(
                self.record(
                    ticket_id,
                    actor,
                    FIELD_NAMES.get(field, field),
                    old_value,
                    new_value,
                    action,
                    changed_at=changed_at,
                )
            )
        return entries
