"""Ticket models and the ticket status state machine.

The state machine is pure: it mutates the in-memory Ticket and hands back the
history entry describing the change. Persisting both is the orchestration
service's job, and no permission checks live here.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Index, event
from sqlmodel import Field, SQLModel

from src.ticketing.core.exceptions import InvalidOperationError
from src.ticketing.models.base import utc_now
from src.ticketing.models.enums import HistoryActionType, TicketPriority, TicketStatus

# Source status -> statuses reachable in one step
ALLOWED_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.OPEN: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.ON_HOLD, TicketStatus.CLOSED}
    ),
    TicketStatus.IN_PROGRESS: frozenset(
        {TicketStatus.REVIEW, TicketStatus.ON_HOLD, TicketStatus.CLOSED}
    ),
    TicketStatus.REVIEW: frozenset(
        {TicketStatus.CLOSED, TicketStatus.IN_PROGRESS, TicketStatus.ON_HOLD}
    ),
    TicketStatus.ON_HOLD: frozenset(
        {TicketStatus.IN_PROGRESS, TicketStatus.OPEN, TicketStatus.CLOSED}
    ),
    TicketStatus.CLOSED: frozenset({TicketStatus.OPEN}),
}


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """Check whether ``current -> target`` is in the transition table."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class TicketHistory(SQLModel, table=True):
    """Append-only record of one field change on a ticket.

    ticket_id has no foreign key: history outlives a deleted
    ticket and is never rewritten.
    """

    __tablename__ = "ticket_histories"
    __table_args__ = (Index("ix_ticket_histories_ticket_changed", "ticket_id", "changed_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ticket_id: UUID = Field(index=True)
    changed_by: str = Field(max_length=255)
    changed_at: datetime = Field(default_factory=utc_now)
    field_name: str = Field(max_length=50)
    old_value: str | None = Field(default=None)
    new_value: str | None = Field(default=None)
    action_type: str = Field(max_length=30)

    @property
    def action_type_enum(self) -> HistoryActionType:
        """Get action type as HistoryActionType enum."""
        return HistoryActionType(self.action_type)


@event.listens_for(TicketHistory, "before_update")
def _reject_history_update(mapper: Any, connection: Any, target: TicketHistory) -> None:
    raise InvalidOperationError("Ticket history entries are immutable")


class Ticket(SQLModel, table=True):
    """Unit of trackable work within a project."""

    __tablename__ = "tickets"
    __table_args__ = (Index("ix_tickets_project_created", "project_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    title: str = Field(max_length=200)
    description: str = Field(default="", max_length=10000)
    status: str = Field(default=TicketStatus.OPEN.value, max_length=20, index=True)
    priority: str = Field(default=TicketPriority.MEDIUM.value, max_length=20)
    category: str = Field(default="", max_length=100)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    due_date: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str = Field(max_length=255)
    updated_at: datetime | None = Field(default=None)
    updated_by: str | None = Field(default=None, max_length=255)

    @property
    def status_enum(self) -> TicketStatus:
        """Get status as TicketStatus enum."""
        return TicketStatus(self.status)

    @property
    def priority_enum(self) -> TicketPriority:
        """Get priority as TicketPriority enum."""
        return TicketPriority(self.priority)

    def can_transition_to(self, target: TicketStatus) -> bool:
        """Check whether this ticket may move to ``target``."""
        return can_transition(self.status_enum, target)

    def update_status(self, new_status: TicketStatus, user_id: str) -> TicketHistory | None:
        """Set a new status.

        Does not consult the transition table; callers check
        can_transition_to() first.

        Returns:
            The history entry to persist, or None when new_status equals the
            current status (no-op: nothing changes, not even updated_at).
        """
        if self.status == new_status.value:
            return None

        old_status = self.status
        self.status = new_status.value
        self.updated_by = user_id
        self.updated_at = utc_now()
        return TicketHistory(
            ticket_id=self.id,
            changed_by=user_id,
            changed_at=self.updated_at,
            field_name="Status",
            old_value=old_status,
            new_value=new_status.value,
            action_type=HistoryActionType.STATUS_CHANGED.value,
        )

    def update_priority(
        self, new_priority: TicketPriority, user_id: str
    ) -> TicketHistory | None:
        """Set a new priority. Same no-op-on-equal contract as update_status()."""
        if self.priority == new_priority.value:
            return None

        old_priority = self.priority
        self.priority = new_priority.value
        self.updated_by = user_id
        self.updated_at = utc_now()
        return TicketHistory(
            ticket_id=self.id,
            changed_by=user_id,
            changed_at=self.updated_at,
            field_name="Priority",
            old_value=old_priority,
            new_value=new_priority.value,
            action_type=HistoryActionType.PRIORITY_CHANGED.value,
        )


class Comment(SQLModel, table=True):
    """Comment on a ticket. Editable only by its author."""

    __tablename__ = "comments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ticket_id: UUID = Field(foreign_key="tickets.id", index=True, ondelete="CASCADE")
    content: str = Field(max_length=10000)
    author_id: str = Field(max_length=255, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = Field(default=None)
    is_edited: bool = Field(default=False)

    def can_edit(self, user_id: str) -> bool:
        """Only the author may edit or delete a comment."""
        return bool(user_id) and user_id == self.author_id


class TicketAssignment(SQLModel, table=True):
    """Assignment of a ticket to one user. A ticket may have several."""

    __tablename__ = "ticket_assignments"
    __table_args__ = (
        Index("ix_ticket_assignments_ticket_assignee", "ticket_id", "assignee_id", unique=True),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    ticket_id: UUID = Field(foreign_key="tickets.id", index=True, ondelete="CASCADE")
    assignee_id: str = Field(max_length=255, index=True)
    assigned_at: datetime = Field(default_factory=utc_now)
    assigned_by: str = Field(max_length=255)
