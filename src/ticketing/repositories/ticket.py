"""Repositories for Ticket and its child entities."""

import json
from uuid import UUID

from sqlalchemy import String, cast, delete, func, or_
from sqlmodel import col, select

from src.ticketing.models import (
    Comment,
    ProjectMember,
    Ticket,
    TicketAssignment,
    TicketHistory,
)
from src.ticketing.repositories.base import BaseRepository
from src.ticketing.schemas.ticket import TicketSearchCriteria


class TicketRepository(BaseRepository[Ticket]):
    """Repository for Ticket entity."""

    model = Ticket

    async def list_by_project(
        self,
        project_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Ticket], str | None, bool]:
        """List tickets of a project, newest first.

        Returns:
            Tuple of (tickets, next_cursor, has_more)
        """
        query = select(Ticket).where(Ticket.project_id == project_id)
        return await self.paginate(query, cursor, limit, Ticket.created_at)

    async def list_by_assignee(
        self,
        assignee_id: str,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Ticket], str | None, bool]:
        """List tickets assigned to a user across projects, newest first."""
        query = select(Ticket).where(
            col(Ticket.id).in_(
                select(TicketAssignment.ticket_id).where(
                    TicketAssignment.assignee_id == assignee_id
                )
            )
        )
        return await self.paginate(query, cursor, limit, Ticket.created_at)

    async def search(
        self,
        project_id: UUID,
        criteria: TicketSearchCriteria,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Ticket], str | None, bool]:
        """Search tickets of a project.

        Filters combine with AND. Within a list filter any value matches.
        The keyword matches title or description, case-insensitively.
        """
        query = select(Ticket).where(Ticket.project_id == project_id)

        if criteria.keyword:
            query = query.where(
                or_(
                    col(Ticket.title).icontains(criteria.keyword, autoescape=True),
                    col(Ticket.description).icontains(criteria.keyword, autoescape=True),
                )
            )
        if criteria.statuses:
            query = query.where(col(Ticket.status).in_([s.value for s in criteria.statuses]))
        if criteria.priorities:
            query = query.where(
                col(Ticket.priority).in_([p.value for p in criteria.priorities])
            )
        if criteria.tags:
            # Tags are a JSON list; match the quoted element in its text form
            tags_text = cast(Ticket.tags, String)  # type: ignore[arg-type]
            query = query.where(
                or_(
                    *[
                        tags_text.contains(json.dumps(tag), autoescape=True)
                        for tag in criteria.tags
                    ]
                )
            )
        if criteria.assignee_ids:
            query = query.where(
                col(Ticket.id).in_(
                    select(TicketAssignment.ticket_id).where(
                        col(TicketAssignment.assignee_id).in_(criteria.assignee_ids)
                    )
                )
            )
        if criteria.created_after:
            query = query.where(Ticket.created_at >= criteria.created_after)
        if criteria.created_before:
            query = query.where(Ticket.created_at <= criteria.created_before)
        if criteria.due_after:
            query = query.where(col(Ticket.due_date) >= criteria.due_after)
        if criteria.due_before:
            query = query.where(col(Ticket.due_date) <= criteria.due_before)

        return await self.paginate(query, cursor, limit, Ticket.created_at)

    async def list_recent_for_user(self, user_id: str, count: int = 10) -> list[Ticket]:
        """Recently touched tickets the user created or is assigned to.

        Only tickets in projects the user is still a member of are returned.
        """
        assigned = select(TicketAssignment.ticket_id).where(
            TicketAssignment.assignee_id == user_id
        )
        member_projects = select(ProjectMember.project_id).where(
            ProjectMember.user_id == user_id
        )
        result = await self.session.execute(
            select(Ticket)
            .where(
                or_(Ticket.created_by == user_id, col(Ticket.id).in_(assigned)),
                col(Ticket.project_id).in_(member_projects),
            )
            .order_by(func.coalesce(Ticket.updated_at, Ticket.created_at).desc())
            .limit(count)
        )
        return list(result.scalars().all())

    async def delete_cascade(self, ticket: Ticket) -> None:
        """Delete a ticket with its comments and assignments. History is kept. No commit."""
        await self.session.execute(
            delete(Comment)
            .where(col(Comment.ticket_id) == ticket.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(TicketAssignment)
            .where(col(TicketAssignment.ticket_id) == ticket.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(ticket)


class TicketAssignmentRepository(BaseRepository[TicketAssignment]):
    """Repository for ticket assignments."""

    model = TicketAssignment

    async def get_active(self, ticket_id: UUID, assignee_id: str) -> TicketAssignment | None:
        """Get the assignment for an exact (ticket, assignee) pair."""
        result = await self.session.execute(
            select(TicketAssignment).where(
                TicketAssignment.ticket_id == ticket_id,
                TicketAssignment.assignee_id == assignee_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_ticket(self, ticket_id: UUID) -> list[TicketAssignment]:
        """List current assignees of a ticket."""
        result = await self.session.execute(
            select(TicketAssignment)
            .where(TicketAssignment.ticket_id == ticket_id)
            .order_by(col(TicketAssignment.assigned_at))
        )
        return list(result.scalars().all())

    async def list_by_assignee(self, assignee_id: str) -> list[TicketAssignment]:
        """List assignments held by a user."""
        result = await self.session.execute(
            select(TicketAssignment).where(TicketAssignment.assignee_id == assignee_id)
        )
        return list(result.scalars().all())


class CommentRepository(BaseRepository[Comment]):
    """Repository for ticket comments."""

    model = Comment

    async def list_by_ticket(self, ticket_id: UUID) -> list[Comment]:
        """List comments of a ticket, oldest first."""
        result = await self.session.execute(
            select(Comment).where(Comment.ticket_id == ticket_id).order_by(col(Comment.created_at))
        )
        return list(result.scalars().all())


class TicketHistoryRepository(BaseRepository[TicketHistory]):
    """Repository for the append-only ticket history."""

    model = TicketHistory

    def add_many(self, entries: list[TicketHistory]) -> None:
        """Add several entries to the session (no flush/commit)."""
        self.session.add_all(entries)

    async def list_by_ticket(self, ticket_id: UUID) -> list[TicketHistory]:
        """List history of a ticket in the order the changes happened."""
        result = await self.session.execute(
            select(TicketHistory)
            .where(TicketHistory.ticket_id == ticket_id)
            .order_by(col(TicketHistory.changed_at), col(TicketHistory.id))
        )
        return list(result.scalars().all())
