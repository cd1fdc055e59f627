"""Shared enums for models."""

from enum import Enum


class OrganizationRole(str, Enum):
    """User role within an organization."""

    MEMBER = "member"
    MANAGER = "manager"
    ADMIN = "admin"


class ProjectRole(str, Enum):
    """User role within a project. Independent of the organization role."""

    VIEWER = "viewer"
    MEMBER = "member"
    ADMIN = "admin"


class TicketStatus(str, Enum):
    """Ticket lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    ON_HOLD = "on_hold"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HistoryActionType(str, Enum):
    """Kind of change recorded in a ticket history entry."""

    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    PRIORITY_CHANGED = "priority_changed"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    COMMENT_ADDED = "comment_added"


class NotificationType(str, Enum):
    """Notification categories."""

    TICKET_ASSIGNED = "ticket_assigned"
    COMMENT_ADDED = "comment_added"
    STATUS_CHANGED = "status_changed"
    MENTIONED_IN_COMMENT = "mentioned_in_comment"
    ORGANIZATION_MEMBER = "organization_member"
    ORGANIZATION_DELETED = "organization_deleted"
    PROJECT_MEMBER = "project_member"
    PROJECT_DELETED = "project_deleted"
    ROLE_CHANGED = "role_changed"
