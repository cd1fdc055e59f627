"""Ticket read schemas and search criteria."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.ticketing.models.enums import TicketPriority, TicketStatus


class TicketRead(BaseModel):
    """Schema for reading a ticket."""

    id: UUID
    project_id: UUID
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category: str
    tags: list[str]
    due_date: datetime | None
    created_at: datetime
    created_by: str
    updated_at: datetime | None = None
    updated_by: str | None = None

    model_config = {"from_attributes": True}


class TicketUpdate(BaseModel):
    """Fields to change on a ticket. Only fields explicitly set are applied.

    Setting ``due_date`` to None clears it. Status changes go through the
    status workflow, not through this schema.
    """

    title: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=10000)
    priority: TicketPriority | None = None
    category: str | None = Field(default=None, max_length=100)
    tags: list[str] | None = None
    due_date: datetime | None = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return list(dict.fromkeys(tag.strip() for tag in v if tag and tag.strip()))


class TicketSearchCriteria(BaseModel):
    """Filters for searching tickets within a project.

    Every filter is optional; filters combine with AND, values within one
    list filter combine with OR.
    """

    keyword: str | None = Field(default=None, max_length=200)
    statuses: list[TicketStatus] = Field(default_factory=list)
    priorities: list[TicketPriority] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    assignee_ids: list[str] = Field(default_factory=list)
    created_after: datetime | None = None
    created_before: datetime | None = None
    due_after: datetime | None = None
    due_before: datetime | None = None

    @field_validator("keyword")
    @classmethod
    def validate_keyword(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return [tag.strip() for tag in v if tag and tag.strip()]
