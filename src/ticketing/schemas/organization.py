"""Organization read schemas (returned by services and cached)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, computed_field


class OrganizationRead(BaseModel):
    """Schema for reading an organization."""

    id: UUID
    name: str
    display_name: str | None
    description: str | None
    is_active: bool
    max_projects: int
    max_members: int
    created_at: datetime
    created_by: str
    updated_at: datetime | None = None
    updated_by: str | None = None

    model_config = {"from_attributes": True}


class LimitUsage(BaseModel):
    """Current usage of a capped resource (projects or members)."""

    current: int
    maximum: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining(self) -> int:
        return max(self.maximum - self.current, 0)
