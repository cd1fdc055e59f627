"""Repository layer - data access abstraction.

Re-exports all repositories: `from src.ticketing.repositories import TicketRepository`
"""

from src.ticketing.repositories.audit import AuditLogRepository
from src.ticketing.repositories.base import BaseRepository
from src.ticketing.repositories.notification import NotificationRepository
from src.ticketing.repositories.organization import (
    OrganizationMemberRepository,
    OrganizationRepository,
)
from src.ticketing.repositories.project import ProjectMemberRepository, ProjectRepository
from src.ticketing.repositories.ticket import (
    CommentRepository,
    TicketAssignmentRepository,
    TicketHistoryRepository,
    TicketRepository,
)

__all__ = [
    # Base
    "BaseRepository",
    # Organization
    "OrganizationMemberRepository",
    "OrganizationRepository",
    # Project
    "ProjectMemberRepository",
    "ProjectRepository",
    # Ticket
    "CommentRepository",
    "TicketAssignmentRepository",
    "TicketHistoryRepository",
    "TicketRepository",
    # Notification and audit
    "AuditLogRepository",
    "NotificationRepository",
]
