"""Notification read schema, also used as the real-time push payload."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class NotificationRead(BaseModel):
    """Schema for reading a notification."""

    id: UUID
    user_id: str
    title: str
    message: str
    type: str
    related_ticket_id: UUID | None
    created_at: datetime
    is_read: bool
    read_at: datetime | None = None

    model_config = {"from_attributes": True}


class NotificationEvent(BaseModel):
    """Event pushed to a connected user over the real-time channel."""

    event: str = "notification"
    data: NotificationRead
