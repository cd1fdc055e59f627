"""Ticket orchestration - mutations, history, notifications and caching.

Each mutating call follows the same order:

1. validate input, load entities, check permissions (nothing written yet)
2. apply the change and commit it
3. append history in its own commit
4. invalidate affected cache keys
5. notify affected users

Steps 4 and 5 are best-effort. A failure there is logged and the call still
succeeds, because the mutation and its history are already durable.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.ticketing.core.cache import CacheKeys, EntityCache
from src.ticketing.core.config import Settings, get_settings
from src.ticketing.core.db import transaction
from src.ticketing.core.exceptions import (
    InvalidInputError,
    InvalidOperationError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
)
from src.ticketing.core.logging import get_logger
from src.ticketing.models import (
    AuditAction,
    Comment,
    HistoryActionType,
    NotificationType,
    Ticket,
    TicketAssignment,
    TicketHistory,
    TicketPriority,
    TicketStatus,
)
from src.ticketing.models.base import utc_now
from src.ticketing.repositories import (
    CommentRepository,
    ProjectRepository,
    TicketAssignmentRepository,
    TicketRepository,
)
from src.ticketing.schemas.ticket import TicketRead, TicketSearchCriteria, TicketUpdate
from src.ticketing.services.audit_service import AuditService
from src.ticketing.services.authorization_service import AuthorizationService
from src.ticketing.services.history_service import HistoryRecorder
from src.ticketing.services.notification_service import NotificationDispatcher
from src.ticketing.services.side_effects import best_effort

logger = get_logger(__name__)

# Fields that may be cleared by passing None explicitly
_NULLABLE_FIELDS = frozenset({"due_date"})


class TicketService:
    """Ticket service - business logic only.

    Stateless per call; all state lives in the entities.
    """

    def __init__(
        self,
        ticket_repo: TicketRepository,
        assignment_repo: TicketAssignmentRepository,
        comment_repo: CommentRepository,
        project_repo: ProjectRepository,
        authz: AuthorizationService,
        recorder: HistoryRecorder,
        notifier: NotificationDispatcher,
        cache: EntityCache,
        session: AsyncSession,
        audit: AuditService | None = None,
        settings: Settings | None = None,
    ):
        self.ticket_repo = ticket_repo
        self.assignment_repo = assignment_repo
        self.comment_repo = comment_repo
        self.project_repo = project_repo
        self.authz = authz
        self.recorder = recorder
        self.notifier = notifier
        self.cache = cache
        self.session = session
        self.audit = audit
        self.settings = settings or get_settings()

    # --- helpers ---

    async def _get_or_raise(self, ticket_id: UUID) -> Ticket:
        ticket = await self.ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    async def _require_access(self, project_id: UUID, user_id: str) -> None:
        if not await self.authz.can_access_project(project_id, user_id):
            raise UnauthorizedError("User is not a member of this project")

    async def _append_history(self, entries: list[TicketHistory]) -> None:
        async with transaction(self.session, "record ticket history"):
            self.recorder.record_entries(entries)

    async def _notify_assignees(
        self,
        ticket: Ticket,
        title: str,
        message: str,
        type: NotificationType,
        exclude_user_id: str | None = None,
    ) -> None:
        # Snapshot of assignees at the time of the event; not retroactive
        assignments = await self.assignment_repo.list_by_ticket(ticket.id)
        recipients = [a.assignee_id for a in assignments if a.assignee_id != exclude_user_id]
        if recipients:
            await self.notifier.notify_many(
                recipients, title, message, type, related_ticket_id=ticket.id
            )

    async def _emit(self, action: AuditAction, ticket_id: UUID, user_id: str, **kwargs) -> None:
        if self.audit is not None:
            await self.audit.emit(
                action, entity_type="ticket", entity_id=ticket_id, user_id=user_id, **kwargs
            )

    # --- mutations ---

    async def create_ticket(
        self,
        project_id: UUID,
        title: str,
        created_by: str,
        description: str = "",
        priority: TicketPriority = TicketPriority.MEDIUM,
        category: str = "",
        tags: list[str] | None = None,
        due_date: datetime | None = None,
    ) -> Ticket:
        """Create a ticket in Open status with one Created history entry.

        No notification is sent: a new ticket has no assignees yet.

        Raises:
            InvalidInputError: If title or created_by is empty
            NotFoundError: If the project does not exist
            UnauthorizedError: If the creator is not a project member
        """
        title = (title or "").strip()
        if not title:
            raise InvalidInputError("title")
        if not created_by:
            raise InvalidInputError("created_by")

        if await self.project_repo.get_by_id(project_id) is None:
            raise NotFoundError("Project", project_id)
        await self._require_access(project_id, created_by)

        ticket = Ticket(
            project_id=project_id,
            title=title,
            description=description or "",
            status=TicketStatus.OPEN.value,
            priority=priority.value,
            category=category or "",
            tags=list(dict.fromkeys(t.strip() for t in tags or [] if t and t.strip())),
            due_date=due_date,
            created_by=created_by,
        )
        async with transaction(self.session, "create ticket"):
            self.ticket_repo.add(ticket)

        async with transaction(self.session, "record ticket history"):
            self.recorder.record(
                ticket.id,
                created_by,
                "Created",
                None,
                "Ticket created",
                HistoryActionType.CREATED,
                changed_at=ticket.created_at,
            )

        logger.info(
            "Ticket created",
            ticket_id=str(ticket.id),
            project_id=str(project_id),
            created_by=created_by,
        )
        await self._emit(AuditAction.TICKET_CREATE, ticket.id, created_by, changes={"title": title})
        return ticket

    async def update_ticket(
        self, ticket_id: UUID, changes: TicketUpdate, updated_by: str
    ) -> Ticket:
        """Apply field edits, recording one history entry per changed field.

        Nothing is written when no field actually changes.
        """
        if not updated_by:
            raise InvalidInputError("updated_by")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, updated_by)

        new_values = {}
        for field in changes.model_fields_set:
            value = getattr(changes, field)
            if value is None and field not in _NULLABLE_FIELDS:
                continue
            if field == "title":
                value = value.strip()
                if not value:
                    raise InvalidInputError("title")
            if isinstance(value, TicketPriority):
                value = value.value
            new_values[field] = value

        old_values = {field: getattr(ticket, field) for field in new_values}
        changed = {f: v for f, v in new_values.items() if old_values[f] != v}
        if not changed:
            return ticket

        now = utc_now()
        async with transaction(self.session, "update ticket"):
            for field, value in changed.items():
                setattr(ticket, field, value)
            ticket.updated_by = updated_by
            ticket.updated_at = now

        async with transaction(self.session, "record ticket history"):
            self.recorder.record_changes(
                ticket.id,
                updated_by,
                {f: old_values[f] for f in changed},
                changed,
                changed_at=now,
            )

        logger.info("Ticket updated", ticket_id=str(ticket_id), fields=sorted(changed))
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await self._emit(
            AuditAction.TICKET_UPDATE,
            ticket_id,
            updated_by,
            changes={f: {"old": str(old_values[f]), "new": str(v)} for f, v in changed.items()},
        )
        return ticket

    async def update_ticket_status(
        self, ticket_id: UUID, new_status: TicketStatus, updated_by: str
    ) -> Ticket:
        """Move a ticket through the status workflow and notify its assignees.

        Requesting the current status is a no-op: nothing is written and no
        one is notified.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if not updated_by:
            raise InvalidInputError("updated_by")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, updated_by)

        if ticket.status == new_status.value:
            return ticket
        if not ticket.can_transition_to(new_status):
            raise InvalidTransitionError(ticket.status_enum, new_status)

        old_status = ticket.status
        async with transaction(self.session, "update ticket status"):
            entry = ticket.update_status(new_status, updated_by)

        if entry is not None:
            await self._append_history([entry])

        logger.info(
            "Ticket status changed",
            ticket_id=str(ticket_id),
            old_status=old_status,
            new_status=new_status.value,
            updated_by=updated_by,
        )
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await best_effort(
            "notify status changed",
            self._notify_assignees(
                ticket,
                "Ticket Status Changed",
                f"Ticket '{ticket.title}' status changed to {new_status.value}",
                NotificationType.STATUS_CHANGED,
            ),
            ticket_id=str(ticket_id),
        )
        await self._emit(
            AuditAction.TICKET_STATUS_CHANGE,
            ticket_id,
            updated_by,
            changes={"old": old_status, "new": new_status.value},
        )
        return ticket

    async def assign_ticket(
        self, ticket_id: UUID, assignee_id: str, assigned_by: str
    ) -> TicketAssignment:
        """Assign a user to a ticket and notify them.

        Several users may be assigned at once; only the exact (ticket, user)
        pair is exclusive.

        Raises:
            InvalidOperationError: If the user is already assigned
        """
        if not assignee_id:
            raise InvalidInputError("assignee_id")
        if not assigned_by:
            raise InvalidInputError("assigned_by")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, assigned_by)

        if await self.assignment_repo.get_active(ticket_id, assignee_id) is not None:
            raise InvalidOperationError("User is already assigned to this ticket")

        assignment = TicketAssignment(
            ticket_id=ticket_id, assignee_id=assignee_id, assigned_by=assigned_by
        )
        async with transaction(self.session, "assign ticket"):
            self.assignment_repo.add(assignment)
            try:
                await self.session.flush()
            except IntegrityError as e:
                # Lost a race with a concurrent identical assignment
                raise InvalidOperationError("User is already assigned to this ticket") from e

        async with transaction(self.session, "record ticket history"):
            self.recorder.record(
                ticket_id,
                assigned_by,
                "Assignment",
                None,
                assignee_id,
                HistoryActionType.ASSIGNED,
                changed_at=assignment.assigned_at,
            )

        logger.info(
            "Ticket assigned",
            ticket_id=str(ticket_id),
            assignee_id=assignee_id,
            assigned_by=assigned_by,
        )
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await best_effort(
            "notify ticket assigned",
            self.notifier.notify(
                assignee_id,
                "Ticket Assigned",
                f"You have been assigned to ticket '{ticket.title}'",
                NotificationType.TICKET_ASSIGNED,
                related_ticket_id=ticket_id,
            ),
            ticket_id=str(ticket_id),
        )
        await self._emit(
            AuditAction.TICKET_ASSIGN, ticket_id, assigned_by, changes={"assignee_id": assignee_id}
        )
        return assignment

    async def remove_ticket_assignment(
        self, ticket_id: UUID, assignee_id: str, removed_by: str
    ) -> bool:
        """Unassign a user. Removing an assignment that does not exist is a no-op.

        Returns:
            True if an assignment was removed
        """
        if not removed_by:
            raise InvalidInputError("removed_by")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, removed_by)

        assignment = await self.assignment_repo.get_active(ticket_id, assignee_id)
        if assignment is None:
            return False

        async with transaction(self.session, "unassign ticket"):
            await self.assignment_repo.delete(assignment)

        async with transaction(self.session, "record ticket history"):
            self.recorder.record(
                ticket_id,
                removed_by,
                "Assignment",
                assignee_id,
                None,
                HistoryActionType.UNASSIGNED,
            )

        logger.info("Ticket unassigned", ticket_id=str(ticket_id), assignee_id=assignee_id)
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await self._emit(
            AuditAction.TICKET_UNASSIGN, ticket_id, removed_by, changes={"assignee_id": assignee_id}
        )
        return True

    async def add_comment(self, ticket_id: UUID, content: str, author_id: str) -> Comment:
        """Add a comment and notify every assignee except the author."""
        if not content or not content.strip():
            raise InvalidInputError("content")
        if not author_id:
            raise InvalidInputError("author_id")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, author_id)

        comment = Comment(ticket_id=ticket_id, content=content, author_id=author_id)
        async with transaction(self.session, "add comment"):
            self.comment_repo.add(comment)
            ticket.updated_at = comment.created_at
            ticket.updated_by = author_id

        async with transaction(self.session, "record ticket history"):
            self.recorder.record(
                ticket_id,
                author_id,
                "Comment",
                None,
                "Comment added",
                HistoryActionType.COMMENT_ADDED,
                changed_at=comment.created_at,
            )

        logger.info(
            "Comment added",
            ticket_id=str(ticket_id),
            comment_id=str(comment.id),
            author_id=author_id,
        )
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await best_effort(
            "notify comment added",
            self._notify_assignees(
                ticket,
                "New Comment",
                f"New comment added to ticket '{ticket.title}'",
                NotificationType.COMMENT_ADDED,
                exclude_user_id=author_id,
            ),
            ticket_id=str(ticket_id),
        )
        await self._emit(
            AuditAction.COMMENT_ADD,
            ticket_id,
            author_id,
            changes={"comment_id": str(comment.id)},
        )
        return comment

    async def update_comment(self, comment_id: UUID, content: str, user_id: str) -> Comment:
        """Edit a comment. Only its author may do so."""
        if not content or not content.strip():
            raise InvalidInputError("content")
        comment = await self.comment_repo.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        if not comment.can_edit(user_id):
            raise UnauthorizedError("Only the author can edit this comment")

        async with transaction(self.session, "update comment"):
            comment.content = content
            comment.is_edited = True
            comment.updated_at = utc_now()

        logger.info("Comment updated", comment_id=str(comment_id), user_id=user_id)
        await self._emit(
            AuditAction.COMMENT_UPDATE,
            comment.ticket_id,
            user_id,
            changes={"comment_id": str(comment_id)},
        )
        return comment

    async def delete_comment(self, comment_id: UUID, user_id: str) -> None:
        """Delete a comment. Only its author may do so."""
        comment = await self.comment_repo.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        if not comment.can_edit(user_id):
            raise UnauthorizedError("Only the author can delete this comment")

        ticket_id = comment.ticket_id
        async with transaction(self.session, "delete comment"):
            await self.comment_repo.delete(comment)

        logger.info("Comment deleted", comment_id=str(comment_id), user_id=user_id)
        await self._emit(
            AuditAction.COMMENT_DELETE, ticket_id, user_id, changes={"comment_id": str(comment_id)}
        )

    async def delete_ticket(self, ticket_id: UUID, deleted_by: str) -> None:
        """Hard-delete a ticket with its comments and assignments.

        History entries and notifications already sent are left in place.
        """
        if not deleted_by:
            raise InvalidInputError("deleted_by")
        ticket = await self._get_or_raise(ticket_id)
        await self._require_access(ticket.project_id, deleted_by)

        async with transaction(self.session, "delete ticket"):
            await self.ticket_repo.delete_cascade(ticket)

        logger.info("Ticket deleted", ticket_id=str(ticket_id), deleted_by=deleted_by)
        await self.cache.remove(CacheKeys.ticket(ticket_id))
        await self._emit(AuditAction.TICKET_DELETE, ticket_id, deleted_by)

    # --- reads ---

    async def get_ticket(self, ticket_id: UUID) -> TicketRead:
        """Get a ticket (read-through cache)."""

        async def load() -> TicketRead | None:
            ticket = await self.ticket_repo.get_by_id(ticket_id)
            return TicketRead.model_validate(ticket) if ticket else None

        result = await self.cache.get_or_load(CacheKeys.ticket(ticket_id), TicketRead, load)
        if result is None:
            raise NotFoundError("Ticket", ticket_id)
        return result

    async def list_project_tickets(
        self, project_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Ticket], str | None, bool]:
        """List tickets of a project with cursor-based pagination."""
        return await self.ticket_repo.list_by_project(project_id, cursor, limit)

    async def list_assignee_tickets(
        self, assignee_id: str, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Ticket], str | None, bool]:
        """List tickets assigned to a user with cursor-based pagination."""
        return await self.ticket_repo.list_by_assignee(assignee_id, cursor, limit)

    async def search_tickets(
        self,
        project_id: UUID,
        criteria: TicketSearchCriteria,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Ticket], str | None, bool]:
        """Search tickets of a project by keyword and filters."""
        return await self.ticket_repo.search(project_id, criteria, cursor, limit)

    async def list_recent_tickets(self, user_id: str, count: int = 10) -> list[Ticket]:
        """Tickets the user recently created or was assigned, most recent first."""
        return await self.ticket_repo.list_recent_for_user(user_id, count)

    async def list_comments(self, ticket_id: UUID) -> list[Comment]:
        await self._get_or_raise(ticket_id)
        return await self.comment_repo.list_by_ticket(ticket_id)

    async def list_assignments(self, ticket_id: UUID) -> list[TicketAssignment]:
        await self._get_or_raise(ticket_id)
        return await self.assignment_repo.list_by_ticket(ticket_id)

    async def get_ticket_history(self, ticket_id: UUID) -> list[TicketHistory]:
        """History entries of a ticket, in the order they happened.

        Also works for deleted tickets, whose history is kept.
        """
        return await self.recorder.history_repo.list_by_ticket(ticket_id)

    async def can_user_access_ticket(self, ticket_id: UUID, user_id: str) -> bool:
        """True if the ticket exists and the user is a member of its project."""
        ticket = await self.ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            return False
        return await self.authz.can_access_project(ticket.project_id, user_id)
