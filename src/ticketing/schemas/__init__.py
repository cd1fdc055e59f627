from src.ticketing.schemas.notification import NotificationEvent, NotificationRead
from src.ticketing.schemas.organization import LimitUsage, OrganizationRead
from src.ticketing.schemas.pagination import decode_cursor, encode_cursor
from src.ticketing.schemas.project import ProjectMemberRead, ProjectRead, ProjectWithMembers
from src.ticketing.schemas.ticket import TicketRead, TicketSearchCriteria, TicketUpdate
from src.ticketing.schemas.user import UserProfile

__all__ = [
    # Notification
    "NotificationEvent",
    "NotificationRead",
    # Organization
    "LimitUsage",
    "OrganizationRead",
    # Pagination
    "decode_cursor",
    "encode_cursor",
    # Project
    "ProjectMemberRead",
    "ProjectRead",
    "ProjectWithMembers",
    # Ticket
    "TicketRead",
    "TicketSearchCriteria",
    "TicketUpdate",
    # User
    "UserProfile",
]
