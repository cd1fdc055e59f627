"""Model exports - Lobby Pattern.

Import from here: `from src.ticketing.models import Ticket, TicketStatus`
"""

# Enums
from src.ticketing.models.audit import AuditAction, AuditLog, AuditStatus
from src.ticketing.models.enums import (
    HistoryActionType,
    NotificationType,
    OrganizationRole,
    ProjectRole,
    TicketPriority,
    TicketStatus,
)

# Membership invariants
from src.ticketing.models.membership import active_admins, is_last_admin, within_limit
from src.ticketing.models.notification import Notification
from src.ticketing.models.organization import Organization, OrganizationMember
from src.ticketing.models.project import Project, ProjectMember

# Tickets and the status state machine
from src.ticketing.models.ticket import (
    ALLOWED_TRANSITIONS,
    Comment,
    Ticket,
    TicketAssignment,
    TicketHistory,
    can_transition,
)

__all__ = [
    # Enums
    "AuditAction",
    "AuditStatus",
    "HistoryActionType",
    "NotificationType",
    "OrganizationRole",
    "ProjectRole",
    "TicketPriority",
    "TicketStatus",
    # Membership invariants
    "active_admins",
    "is_last_admin",
    "within_limit",
    # Tables
    "AuditLog",
    "Comment",
    "Notification",
    "Organization",
    "OrganizationMember",
    "Project",
    "ProjectMember",
    "Ticket",
    "TicketAssignment",
    "TicketHistory",
    # State machine
    "ALLOWED_TRANSITIONS",
    "can_transition",
]
