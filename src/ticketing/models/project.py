"""Project models - work containers within an organization."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.ticketing.models.base import utc_now
from src.ticketing.models.enums import ProjectRole


class Project(SQLModel, table=True):
    """Project belonging to exactly one organization."""

    __tablename__ = "projects"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(
        foreign_key="organizations.id", index=True, ondelete="CASCADE"
    )
    name: str = Field(max_length=200, index=True)
    description: str = Field(default="", max_length=2000)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    created_by: str = Field(max_length=255)
    updated_at: datetime | None = Field(default=None)
    updated_by: str | None = Field(default=None, max_length=255)


class ProjectMember(SQLModel, table=True):
    """Project membership.

    Access to a project is defined only by rows in this table; an
    organization role never implies project access. Removing a member
    deletes the row, so every stored row is an active membership.
    """

    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    user_id: str = Field(max_length=255, index=True)
    role: str = Field(default=ProjectRole.MEMBER.value, max_length=20)
    joined_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> ProjectRole:
        """Get role as ProjectRole enum."""
        return ProjectRole(self.role)
