"""Project read schemas (returned by services and cached)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProjectRead(BaseModel):
    """Schema for reading a project."""

    id: UUID
    organization_id: UUID
    name: str
    description: str
    is_active: bool
    created_at: datetime
    created_by: str
    updated_at: datetime | None = None
    updated_by: str | None = None

    model_config = {"from_attributes": True}


class ProjectMemberRead(BaseModel):
    """Schema for reading a project membership."""

    id: UUID
    project_id: UUID
    user_id: str
    role: str
    joined_at: datetime

    model_config = {"from_attributes": True}


class ProjectWithMembers(ProjectRead):
    """Project together with its membership list."""

    members: list[ProjectMemberRead] = Field(default_factory=list)
