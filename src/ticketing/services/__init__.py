from src.ticketing.services.audit_service import AuditService
from src.ticketing.services.authorization_service import AuthorizationService
from src.ticketing.services.factory import Services, build_services
from src.ticketing.services.history_service import HistoryRecorder
from src.ticketing.services.notification_service import NotificationDispatcher
from src.ticketing.services.organization_service import OrganizationService
from src.ticketing.services.project_service import ProjectService
from src.ticketing.services.ticket_service import TicketService

__all__ = [
    "AuditService",
    "AuthorizationService",
    "HistoryRecorder",
    "NotificationDispatcher",
    "OrganizationService",
    "ProjectService",
    "Services",
    "TicketService",
    "build_services",
]
