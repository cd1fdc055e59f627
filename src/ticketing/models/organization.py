"""Organization models - tenant root and its membership."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.ticketing.models.base import utc_now
from src.ticketing.models.enums import OrganizationRole


class Organization(SQLModel, table=True):
    """Tenant root owning members and projects.

    Name uniqueness applies to active organizations only and is enforced by
    OrganizationService, so a deactivated organization's name can be reused.
    """

    __tablename__ = "organizations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100, index=True)
    display_name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    is_active: bool = Field(default=True)
    max_projects: int = Field(default=100)
    max_members: int = Field(default=1000)
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str = Field(max_length=255)
    updated_at: datetime | None = Field(default=None)
    updated_by: str | None = Field(default=None, max_length=255)


class OrganizationMember(SQLModel, table=True):
    """Join entity between an identity-provider user and an organization."""

    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(
        foreign_key="organizations.id", index=True, ondelete="CASCADE"
    )
    user_id: str = Field(max_length=255, index=True)
    # Display snapshot taken from the identity provider when the member joined
    user_name: str = Field(max_length=200)
    user_email: str | None = Field(default=None, max_length=255)
    role: str = Field(default=OrganizationRole.MEMBER.value, max_length=20)
    joined_at: datetime = Field(default_factory=utc_now)
    invited_by: str | None = Field(default=None, max_length=255)
    is_active: bool = Field(default=True)
    last_accessed_at: datetime | None = Field(default=None)

    @property
    def role_enum(self) -> OrganizationRole:
        """Get role as OrganizationRole enum."""
        return OrganizationRole(self.role)
