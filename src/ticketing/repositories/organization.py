"""Repositories for Organization and OrganizationMember entities."""

from uuid import UUID

from sqlalchemy import delete, func
from sqlmodel import col, select

from src.ticketing.models import (
    Organization,
    OrganizationMember,
    OrganizationRole,
    Project,
)
from src.ticketing.repositories.base import BaseRepository
from src.ticketing.repositories.project import delete_project_tree


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization entity."""

    model = Organization

    async def get_active_by_name(
        self, name: str, exclude_id: UUID | None = None
    ) -> Organization | None:
        """Get the active organization using ``name``, optionally ignoring one id."""
        query = select(Organization).where(
            Organization.name == name,
            Organization.is_active == True,  # noqa: E712
        )
        if exclude_id is not None:
            query = query.where(Organization.id != exclude_id)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def list_by_user_membership(self, user_id: str) -> list[Organization]:
        """List active organizations where the user has an active membership."""
        result = await self.session.execute(
            select(Organization)
            .join(
                OrganizationMember,
                OrganizationMember.organization_id == Organization.id,  # type: ignore[arg-type]
            )
            .where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active == True,  # noqa: E712
                Organization.is_active == True,  # noqa: E712
            )
            .order_by(col(Organization.name))
        )
        return list(result.scalars().all())

    async def count_projects(self, organization_id: UUID) -> int:
        """Count projects in an organization (active or not)."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Project)
            .where(Project.organization_id == organization_id)
        )
        return result.scalar_one()

    async def count_active_members(self, organization_id: UUID) -> int:
        """Count active members of an organization."""
        result = await self.session.execute(
            select(func.count())
            .select_from(OrganizationMember)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one()

    async def delete_cascade(self, organization: Organization) -> None:
        """Delete an organization with its members, projects and their tickets.

        Ticket history and notifications are kept. No commit.
        """
        await delete_project_tree(
            self.session,
            select(Project.id).where(Project.organization_id == organization.id),
        )
        await self.session.execute(
            delete(Project)
            .where(col(Project.organization_id) == organization.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(OrganizationMember)
            .where(col(OrganizationMember.organization_id) == organization.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(organization)


class OrganizationMemberRepository(BaseRepository[OrganizationMember]):
    """Repository for organization memberships."""

    model = OrganizationMember

    async def get_member(self, organization_id: UUID, user_id: str) -> OrganizationMember | None:
        """Get a membership row regardless of its active flag."""
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_member(
        self, organization_id: UUID, user_id: str
    ) -> OrganizationMember | None:
        """Get an active membership row."""
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def get_role(self, organization_id: UUID, user_id: str) -> OrganizationRole | None:
        """Get the user's role, or None without an active membership."""
        member = await self.get_active_member(organization_id, user_id)
        return member.role_enum if member else None

    async def list_active(self, organization_id: UUID) -> list[OrganizationMember]:
        """List active members, oldest first."""
        result = await self.session.execute(
            select(OrganizationMember)
            .where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active == True,  # noqa: E712
            )
            .order_by(col(OrganizationMember.joined_at))
        )
        return list(result.scalars().all())

    async def list_active_admins(self, organization_id: UUID) -> list[OrganizationMember]:
        """List active members holding the Admin role."""
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.is_active == True,  # noqa: E712
                OrganizationMember.role == OrganizationRole.ADMIN.value,
            )
        )
        return list(result.scalars().all())

    async def list_user_memberships(self, user_id: str) -> list[OrganizationMember]:
        """List all active memberships of a user."""
        result = await self.session.execute(
            select(OrganizationMember).where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active == True,  # noqa: E712
            )
        )
        return list(result.scalars().all())
