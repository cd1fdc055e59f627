"""Service wiring over one database session."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ticketing.core.cache import EntityCache
from src.ticketing.core.config import Settings, get_settings
from src.ticketing.core.db import get_session_factory
from src.ticketing.core.identity import IdentityClient
from src.ticketing.repositories import (
    AuditLogRepository,
    CommentRepository,
    OrganizationMemberRepository,
    OrganizationRepository,
    ProjectMemberRepository,
    ProjectRepository,
    TicketAssignmentRepository,
    TicketHistoryRepository,
    TicketRepository,
)
from src.ticketing.services.audit_service import AuditService
from src.ticketing.services.authorization_service import AuthorizationService
from src.ticketing.services.history_service import HistoryRecorder
from src.ticketing.services.notification_service import NotificationDispatcher
from src.ticketing.services.organization_service import OrganizationService
from src.ticketing.services.project_service import ProjectService
from src.ticketing.services.ticket_service import TicketService


@dataclass(frozen=True)
class Services:
    """Services sharing one session, one cache and one authorization component."""

    authorization: AuthorizationService
    notifications: NotificationDispatcher
    organizations: OrganizationService
    projects: ProjectService
    tickets: TicketService
    audit: AuditService | None = None


def build_services(
    session: AsyncSession,
    cache: EntityCache | None = None,
    identity: IdentityClient | None = None,
    audit_session: AsyncSession | None = None,
    notification_sessions: async_sessionmaker[AsyncSession] | None = None,
    settings: Settings | None = None,
) -> Services:
    """Build the orchestration services for one unit of work (e.g. one request).

    Args:
        session: Session used by every repository and for commits
        cache: Shared read-through cache (one per process is typical)
        identity: Optional identity client used to snapshot member names
        audit_session: Separate session for audit writes; no audit when None
        notification_sessions: Session factory for notification writes and reads;
            defaults to one bound to the same engine as session
        settings: Settings override (tests)
    """
    settings = settings or get_settings()
    cache = cache or EntityCache()

    org_repo = OrganizationRepository(session)
    org_member_repo = OrganizationMemberRepository(session)
    project_repo = ProjectRepository(session)
    project_member_repo = ProjectMemberRepository(session)

    authz = AuthorizationService(org_member_repo, project_member_repo)
    notifier = NotificationDispatcher(
        notification_sessions or get_session_factory(session.bind), settings
    )
    audit = (
        AuditService(AuditLogRepository(audit_session), audit_session)
        if audit_session is not None
        else None
    )

    organizations = OrganizationService(
        org_repo,
        org_member_repo,
        authz,
        notifier,
        cache,
        session,
        identity=identity,
        audit=audit,
        settings=settings,
    )
    projects = ProjectService(
        project_repo,
        project_member_repo,
        org_repo,
        authz,
        notifier,
        cache,
        session,
        audit=audit,
        settings=settings,
    )
    tickets = TicketService(
        TicketRepository(session),
        TicketAssignmentRepository(session),
        CommentRepository(session),
        project_repo,
        authz,
        HistoryRecorder(TicketHistoryRepository(session)),
        notifier,
        cache,
        session,
        audit=audit,
        settings=settings,
    )
    return Services(
        authorization=authz,
        notifications=notifier,
        organizations=organizations,
        projects=projects,
        tickets=tickets,
        audit=audit,
    )
