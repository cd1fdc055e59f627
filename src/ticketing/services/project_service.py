"""Project lifecycle and project membership management."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.ticketing.core.cache import CacheKeys, EntityCache
from src.ticketing.core.config import Settings, get_settings
from src.ticketing.core.db import transaction
from src.ticketing.core.exceptions import (
    InvalidInputError,
    InvalidOperationError,
    NotFoundError,
    UnauthorizedError,
)
from src.ticketing.core.logging import get_logger
from src.ticketing.models import (
    AuditAction,
    NotificationType,
    Project,
    ProjectMember,
    ProjectRole,
    is_last_admin,
    within_limit,
)
from src.ticketing.models.base import utc_now
from src.ticketing.repositories import (
    OrganizationRepository,
    ProjectMemberRepository,
    ProjectRepository,
)
from src.ticketing.schemas.project import ProjectRead, ProjectWithMembers
from src.ticketing.services.audit_service import AuditService
from src.ticketing.services.authorization_service import AuthorizationService
from src.ticketing.services.notification_service import NotificationDispatcher
from src.ticketing.services.side_effects import best_effort

logger = get_logger(__name__)


class ProjectService:
    """Project service - business logic only."""

    def __init__(
        self,
        project_repo: ProjectRepository,
        member_repo: ProjectMemberRepository,
        org_repo: OrganizationRepository,
        authz: AuthorizationService,
        notifier: NotificationDispatcher,
        cache: EntityCache,
        session: AsyncSession,
        audit: AuditService | None = None,
        settings: Settings | None = None,
    ):
        self.project_repo = project_repo
        self.member_repo = member_repo
        self.org_repo = org_repo
        self.authz = authz
        self.notifier = notifier
        self.cache = cache
        self.session = session
        self.audit = audit
        self.settings = settings or get_settings()

    async def _get_or_raise(self, project_id: UUID) -> Project:
        project = await self.project_repo.get_by_id(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    async def _require_manage(self, project_id: UUID, user_id: str, action: str) -> None:
        if not await self.authz.can_manage_project(project_id, user_id):
            raise UnauthorizedError(f"Only project admins can {action}")

    async def _emit(self, action: AuditAction, project: Project, user_id: str, **kwargs) -> None:
        if self.audit is not None:
            await self.audit.emit(
                action,
                entity_type="project",
                entity_id=project.id,
                user_id=user_id,
                organization_id=project.organization_id,
                **kwargs,
            )

    async def create_project(
        self,
        organization_id: UUID,
        name: str,
        created_by: str,
        description: str = "",
    ) -> Project:
        """Create a project; the creator becomes its Admin in the same commit.

        Raises:
            InvalidInputError: If name or created_by is empty
            NotFoundError: If the organization does not exist
            UnauthorizedError: If the creator is not an organization Manager or Admin
            InvalidOperationError: If the organization is inactive or at its project limit
        """
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("name")
        if not created_by:
            raise InvalidInputError("created_by")

        organization = await self.org_repo.get_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        if not organization.is_active:
            raise InvalidOperationError("Cannot create a project in an inactive organization")
        if not await self.authz.can_create_project(organization_id, created_by):
            raise UnauthorizedError("Only organization managers and admins can create projects")

        project_count = await self.org_repo.count_projects(organization_id)
        if not within_limit(project_count, organization.max_projects):
            raise InvalidOperationError(
                f"Organization has reached its project limit ({organization.max_projects})"
            )

        project = Project(
            organization_id=organization_id,
            name=name,
            description=description or "",
            created_by=created_by,
        )
        creator = ProjectMember(
            project_id=project.id,
            user_id=created_by,
            role=ProjectRole.ADMIN.value,
        )
        async with transaction(self.session, "create project"):
            self.project_repo.add(project)
            await self.session.flush()
            self.member_repo.add(creator)

        logger.info(
            "Project created",
            project_id=str(project.id),
            organization_id=str(organization_id),
            created_by=created_by,
        )
        await self.cache.remove(
            CacheKeys.user_projects(created_by),
            CacheKeys.organization_projects(organization_id),
        )
        await self._emit(AuditAction.PROJECT_CREATE, project, created_by, changes={"name": name})
        return project

    async def update_project(
        self,
        project_id: UUID,
        updated_by: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """Update name/description. Project Admin only.

        Only the project's own cache entry is invalidated; list caches expire
        by TTL.
        """
        project = await self._get_or_raise(project_id)
        await self._require_manage(project_id, updated_by, "update the project")

        changes: dict[str, dict[str, str]] = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidInputError("name")
            if name != project.name:
                changes["name"] = {"old": project.name, "new": name}
        if description is not None and description != project.description:
            changes["description"] = {"old": project.description, "new": description}

        if not changes:
            return project

        async with transaction(self.session, "update project"):
            for field, change in changes.items():
                setattr(project, field, change["new"])
            project.updated_by = updated_by
            project.updated_at = utc_now()

        logger.info("Project updated", project_id=str(project_id), fields=sorted(changes))
        await self.cache.remove(CacheKeys.project(project_id))
        await self._emit(AuditAction.PROJECT_UPDATE, project, updated_by, changes=changes)
        return project

    async def get_project(self, project_id: UUID) -> ProjectWithMembers:
        """Get a project with its members (read-through cache)."""
        result = await self.cache.get_or_load(
            CacheKeys.project(project_id),
            ProjectWithMembers,
            lambda: self.project_repo.get_with_members(project_id),
            ttl=self.settings.cache_project_ttl_seconds,
        )
        if result is None:
            raise NotFoundError("Project", project_id)
        return result

    async def list_user_projects(self, user_id: str) -> list[ProjectRead]:
        """Projects the user is a member of (read-through cache)."""

        async def load() -> list[ProjectRead]:
            projects = await self.project_repo.list_by_user(user_id)
            return [ProjectRead.model_validate(p) for p in projects]

        return await self.cache.get_or_load(
            CacheKeys.user_projects(user_id),
            list[ProjectRead],
            load,
            ttl=self.settings.cache_list_ttl_seconds,
        )

    async def list_organization_projects(self, organization_id: UUID) -> list[ProjectRead]:
        """Projects of an organization (read-through cache)."""

        async def load() -> list[ProjectRead]:
            projects = await self.project_repo.list_by_organization(organization_id)
            return [ProjectRead.model_validate(p) for p in projects]

        return await self.cache.get_or_load(
            CacheKeys.organization_projects(organization_id),
            list[ProjectRead],
            load,
            ttl=self.settings.cache_list_ttl_seconds,
        )

    async def add_member(
        self,
        project_id: UUID,
        user_id: str,
        role: ProjectRole,
        added_by: str,
    ) -> ProjectMember:
        """Add a user to a project. Project Admin only.

        Raises:
            InvalidOperationError: If the user is already a member
        """
        if not user_id:
            raise InvalidInputError("user_id")
        project = await self._get_or_raise(project_id)
        await self._require_manage(project_id, added_by, "add members")

        if await self.member_repo.get_member(project_id, user_id) is not None:
            raise InvalidOperationError("User is already a member of this project")

        member = ProjectMember(project_id=project_id, user_id=user_id, role=role.value)
        async with transaction(self.session, "add project member"):
            self.member_repo.add(member)

        logger.info(
            "Project member added", project_id=str(project_id), user_id=user_id, role=role.value
        )
        await self.cache.remove(CacheKeys.project(project_id), CacheKeys.user_projects(user_id))
        await best_effort(
            "notify project member added",
            self.notifier.notify(
                user_id,
                "Added to Project",
                f"You have been added to project '{project.name}' as {role.value}",
                NotificationType.PROJECT_MEMBER,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_ADD,
            project,
            added_by,
            changes={"user_id": user_id, "role": role.value},
        )
        return member

    async def update_member_role(
        self,
        project_id: UUID,
        user_id: str,
        new_role: ProjectRole,
        updated_by: str,
    ) -> ProjectMember:
        """Change a member's project role. Project Admin only.

        Raises:
            InvalidOperationError: If this would demote the last project Admin
        """
        project = await self._get_or_raise(project_id)
        await self._require_manage(project_id, updated_by, "change member roles")

        member = await self.member_repo.get_member(project_id, user_id)
        if member is None:
            raise NotFoundError("Project member", user_id)

        old_role = member.role
        if old_role == new_role.value:
            return member

        if new_role != ProjectRole.ADMIN:
            members = await self.member_repo.list_by_project(project_id)
            if is_last_admin(members, user_id):
                raise InvalidOperationError("Cannot demote the last admin of the project")

        async with transaction(self.session, "update project member role"):
            member.role = new_role.value

        logger.info(
            "Project member role changed",
            project_id=str(project_id),
            user_id=user_id,
            old_role=old_role,
            new_role=new_role.value,
        )
        await self.cache.remove(CacheKeys.project(project_id))
        await best_effort(
            "notify project role changed",
            self.notifier.notify(
                user_id,
                "Role Updated",
                f"Your role in project '{project.name}' has been updated to {new_role.value}",
                NotificationType.ROLE_CHANGED,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_ROLE_CHANGE,
            project,
            updated_by,
            changes={"user_id": user_id, "old": old_role, "new": new_role.value},
        )
        return member

    async def remove_member(self, project_id: UUID, user_id: str, removed_by: str) -> None:
        """Remove a user from a project. Project Admin only.

        Raises:
            InvalidOperationError: If the member is the last project Admin
        """
        project = await self._get_or_raise(project_id)
        await self._require_manage(project_id, removed_by, "remove members")

        member = await self.member_repo.get_member(project_id, user_id)
        if member is None:
            raise NotFoundError("Project member", user_id)

        members = await self.member_repo.list_by_project(project_id)
        if is_last_admin(members, user_id):
            raise InvalidOperationError("Cannot remove the last admin of the project")

        async with transaction(self.session, "remove project member"):
            await self.member_repo.delete(member)

        logger.info(
            "Project member removed",
            project_id=str(project_id),
            user_id=user_id,
            removed_by=removed_by,
        )
        await self.cache.remove(CacheKeys.project(project_id), CacheKeys.user_projects(user_id))
        await best_effort(
            "notify project member removed",
            self.notifier.notify(
                user_id,
                "Removed from Project",
                f"You have been removed from project '{project.name}'",
                NotificationType.PROJECT_MEMBER,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_REMOVE, project, removed_by, changes={"user_id": user_id}
        )

    async def _set_active(self, project_id: UUID, user_id: str, active: bool) -> Project:
        project = await self._get_or_raise(project_id)
        verb = "activate" if active else "deactivate"
        await self._require_manage(project_id, user_id, f"{verb} the project")
        if project.is_active == active:
            return project

        async with transaction(self.session, f"{verb} project"):
            project.is_active = active
            project.updated_by = user_id
            project.updated_at = utc_now()

        logger.info(f"Project {verb}d", project_id=str(project_id), user_id=user_id)
        await self.cache.remove(CacheKeys.project(project_id))
        await self._emit(
            AuditAction.PROJECT_ACTIVATE if active else AuditAction.PROJECT_DEACTIVATE,
            project,
            user_id,
        )
        return project

    async def deactivate_project(self, project_id: UUID, deactivated_by: str) -> Project:
        """Mark a project inactive. Project Admin only."""
        return await self._set_active(project_id, deactivated_by, active=False)

    async def activate_project(self, project_id: UUID, activated_by: str) -> Project:
        """Mark a project active again. Project Admin only."""
        return await self._set_active(project_id, activated_by, active=True)

    async def delete_project(self, project_id: UUID, deleted_by: str) -> None:
        """Delete a project with its tickets. Project Admin only.

        Ticket history and already-sent notifications are kept.
        """
        project = await self._get_or_raise(project_id)
        await self._require_manage(project_id, deleted_by, "delete the project")

        member_ids = [m.user_id for m in await self.member_repo.list_by_project(project_id)]
        project_name = project.name
        organization_id = project.organization_id

        async with transaction(self.session, "delete project"):
            await self.project_repo.delete_cascade(project)

        logger.info("Project deleted", project_id=str(project_id), deleted_by=deleted_by)
        await self.cache.remove(
            CacheKeys.project(project_id),
            CacheKeys.organization_projects(organization_id),
            *(CacheKeys.user_projects(uid) for uid in member_ids),
        )
        await best_effort(
            "notify project deleted",
            self.notifier.notify_many(
                [uid for uid in member_ids if uid != deleted_by],
                "Project Deleted",
                f"Project '{project_name}' has been deleted",
                NotificationType.PROJECT_DELETED,
            ),
            project_id=str(project_id),
        )
        await self._emit(AuditAction.PROJECT_DELETE, project, deleted_by)
