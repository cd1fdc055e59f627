"""Repositories for Project and ProjectMember entities."""

from typing import Any
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from src.ticketing.models import (
    Comment,
    Project,
    ProjectMember,
    ProjectRole,
    Ticket,
    TicketAssignment,
)
from src.ticketing.repositories.base import BaseRepository
from src.ticketing.schemas.project import ProjectMemberRead, ProjectWithMembers


async def delete_project_tree(session: AsyncSession, project_ids: Any) -> None:
    """Bulk-delete tickets (with comments and assignments) and memberships of projects.

    ``project_ids`` is a list or a select of project ids. Project rows are
    deleted by the caller. Ticket history has no foreign key and is kept.
    """
    ticket_ids = select(Ticket.id).where(col(Ticket.project_id).in_(project_ids))
    await session.execute(
        delete(Comment)
        .where(col(Comment.ticket_id).in_(ticket_ids))
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(TicketAssignment)
        .where(col(TicketAssignment.ticket_id).in_(ticket_ids))
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(Ticket)
        .where(col(Ticket.project_id).in_(project_ids))
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(ProjectMember)
        .where(col(ProjectMember.project_id).in_(project_ids))
        .execution_options(synchronize_session=False)
    )


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project entity."""

    model = Project

    async def get_with_members(self, project_id: UUID) -> ProjectWithMembers | None:
        """Get a project together with its membership list."""
        project = await self.get_by_id(project_id)
        if project is None:
            return None
        result = await self.session.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(col(ProjectMember.joined_at))
        )
        members = [ProjectMemberRead.model_validate(m) for m in result.scalars().all()]
        return ProjectWithMembers.model_validate(
            {**project.model_dump(), "members": members}
        )

    async def list_by_user(self, user_id: str) -> list[Project]:
        """List projects the user is a member of, newest first."""
        result = await self.session.execute(
            select(Project)
            .join(ProjectMember, ProjectMember.project_id == Project.id)  # type: ignore[arg-type]
            .where(ProjectMember.user_id == user_id)
            .order_by(col(Project.created_at).desc())
        )
        return list(result.scalars().all())

    async def list_by_organization(self, organization_id: UUID) -> list[Project]:
        """List projects of an organization, newest first."""
        result = await self.session.execute(
            select(Project)
            .where(Project.organization_id == organization_id)
            .order_by(col(Project.created_at).desc())
        )
        return list(result.scalars().all())

    async def delete_cascade(self, project: Project) -> None:
        """Delete a project with its members and tickets. No commit."""
        await delete_project_tree(self.session, [project.id])
        await self.session.delete(project)


class ProjectMemberRepository(BaseRepository[ProjectMember]):
    """Repository for project memberships."""

    model = ProjectMember

    async def get_member(self, project_id: UUID, user_id: str) -> ProjectMember | None:
        """Get a user's membership row in a project."""
        result = await self.session.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_role(self, project_id: UUID, user_id: str) -> ProjectRole | None:
        """Get the user's project role, or None if not a member."""
        member = await self.get_member(project_id, user_id)
        return member.role_enum if member else None

    async def list_by_project(self, project_id: UUID) -> list[ProjectMember]:
        """List members of a project, oldest first."""
        result = await self.session.execute(
            select(ProjectMember)
            .where(ProjectMember.project_id == project_id)
            .order_by(col(ProjectMember.joined_at))
        )
        return list(result.scalars().all())
