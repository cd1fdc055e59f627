"""Audit log model for compliance and observability events."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Index
from sqlmodel import Field, SQLModel

from src.ticketing.models.base import utc_now


class AuditAction(str, Enum):
    """Audit action types for type-safe logging."""

    # Organization
    ORGANIZATION_CREATE = "organization.create"
    ORGANIZATION_UPDATE = "organization.update"
    ORGANIZATION_DELETE = "organization.delete"

    # Membership
    MEMBER_ADD = "member.add"
    MEMBER_REMOVE = "member.remove"
    MEMBER_ROLE_CHANGE = "member.role_change"

    # Project
    PROJECT_CREATE = "project.create"
    PROJECT_UPDATE = "project.update"
    PROJECT_DELETE = "project.delete"
    PROJECT_ACTIVATE = "project.activate"
    PROJECT_DEACTIVATE = "project.deactivate"

    # Ticket
    TICKET_CREATE = "ticket.create"
    TICKET_UPDATE = "ticket.update"
    TICKET_STATUS_CHANGE = "ticket.status_change"
    TICKET_ASSIGN = "ticket.assign"
    TICKET_UNASSIGN = "ticket.unassign"
    TICKET_DELETE = "ticket.delete"

    # Comment
    COMMENT_ADD = "comment.add"
    COMMENT_UPDATE = "comment.update"
    COMMENT_DELETE = "comment.delete"


class AuditStatus(str, Enum):
    """Audit log status."""

    SUCCESS = "success"
    FAILURE = "failure"


class AuditLog(SQLModel, table=True):
    """Audit log for tracking who changed what."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_org_created", "organization_id", "created_at"),
        Index("ix_audit_logs_user_created", "user_id", "created_at"),
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Context
    organization_id: UUID | None = Field(default=None)
    user_id: str | None = Field(default=None, max_length=255)

    # Action details
    action: str = Field(max_length=50)  # AuditAction value
    entity_type: str = Field(max_length=50)  # "organization", "project", "ticket", ...
    entity_id: UUID | None = Field(default=None)

    # Change tracking (for update operations)
    changes: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )

    # Request metadata
    ip_address: str | None = Field(max_length=45, default=None)
    user_agent: str | None = Field(max_length=500, default=None)
    request_id: str | None = Field(max_length=36, default=None)

    # Result
    status: str = Field(default=AuditStatus.SUCCESS.value, max_length=20)
    error_message: str | None = Field(max_length=1000, default=None)

    created_at: datetime = Field(default_factory=utc_now)
