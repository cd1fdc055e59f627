"""Authorization decisions derived from organization and project membership.

Every check is a read-only query that answers with a boolean. A missing
membership is an ordinary False, never an exception; turning False into an
access-denied outcome is the caller's job. Only infrastructure errors from
the repositories propagate.
"""

from uuid import UUID

from src.ticketing.core.logging import get_logger
from src.ticketing.models import OrganizationRole, ProjectRole
from src.ticketing.repositories import OrganizationMemberRepository, ProjectMemberRepository

logger = get_logger(__name__)

_PROJECT_CREATOR_ROLES = frozenset({OrganizationRole.MANAGER, OrganizationRole.ADMIN})


class AuthorizationService:
    """Single place for role checks consumed by the orchestration services."""

    def __init__(
        self,
        org_member_repo: OrganizationMemberRepository,
        project_member_repo: ProjectMemberRepository,
    ):
        self.org_member_repo = org_member_repo
        self.project_member_repo = project_member_repo

    async def _org_role(self, organization_id: UUID, user_id: str) -> OrganizationRole | None:
        if not user_id:
            return None
        return await self.org_member_repo.get_role(organization_id, user_id)

    async def _project_role(self, project_id: UUID, user_id: str) -> ProjectRole | None:
        if not user_id:
            return None
        return await self.project_member_repo.get_role(project_id, user_id)

    @staticmethod
    def _decide(allowed: bool, check: str, scope_id: UUID, user_id: str) -> bool:
        if not allowed:
            logger.debug(
                "Authorization denied", check=check, scope_id=str(scope_id), user_id=user_id
            )
        return allowed

    async def can_access_organization(self, organization_id: UUID, user_id: str) -> bool:
        """Any active membership."""
        role = await self._org_role(organization_id, user_id)
        return self._decide(role is not None, "access_organization", organization_id, user_id)

    async def can_manage_organization(self, organization_id: UUID, user_id: str) -> bool:
        """Active Admin membership."""
        role = await self._org_role(organization_id, user_id)
        return self._decide(
            role == OrganizationRole.ADMIN, "manage_organization", organization_id, user_id
        )

    async def can_create_project(self, organization_id: UUID, user_id: str) -> bool:
        """Active Manager or Admin membership."""
        role = await self._org_role(organization_id, user_id)
        return self._decide(
            role in _PROJECT_CREATOR_ROLES, "create_project", organization_id, user_id
        )

    async def can_manage_members(self, organization_id: UUID, user_id: str) -> bool:
        """Active Admin membership."""
        role = await self._org_role(organization_id, user_id)
        return self._decide(
            role == OrganizationRole.ADMIN, "manage_members", organization_id, user_id
        )

    async def can_access_project(self, project_id: UUID, user_id: str) -> bool:
        """Any project membership. Organization role does not grant project access."""
        role = await self._project_role(project_id, user_id)
        return self._decide(role is not None, "access_project", project_id, user_id)

    async def can_manage_project(self, project_id: UUID, user_id: str) -> bool:
        """Project Admin membership."""
        role = await self._project_role(project_id, user_id)
        return self._decide(role == ProjectRole.ADMIN, "manage_project", project_id, user_id)
