"""Notification model - owned by the recipient, not by the triggering entity."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel

from src.ticketing.models.base import utc_now
from src.ticketing.models.enums import NotificationType


class Notification(SQLModel, table=True):
    """User-owned message describing an event.

    related_ticket_id has no foreign key: a notification stays readable after
    the ticket it refers to is deleted.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: str = Field(max_length=255)
    title: str = Field(max_length=200)
    message: str = Field(max_length=2000)
    type: str = Field(max_length=30)
    related_ticket_id: UUID | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    is_read: bool = Field(default=False)
    read_at: datetime | None = Field(default=None)

    @property
    def type_enum(self) -> NotificationType:
        """Get type as NotificationType enum."""
        return NotificationType(self.type)
