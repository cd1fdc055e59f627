"""Organization lifecycle and membership management."""

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
from src.ticketing.core.identity import IdentityClient
from src.ticketing.core.logging import get_logger
from src.ticketing.models import (
    AuditAction,
    NotificationType,
    Organization,
    OrganizationMember,
    OrganizationRole,
    is_last_admin,
    within_limit,
)
from src.ticketing.models.base import utc_now
from src.ticketing.repositories import OrganizationMemberRepository, OrganizationRepository
from src.ticketing.schemas.organization import LimitUsage, OrganizationRead
from src.ticketing.services.audit_service import AuditService
from src.ticketing.services.authorization_service import AuthorizationService
from src.ticketing.services.notification_service import NotificationDispatcher
from src.ticketing.services.side_effects import best_effort

logger = get_logger(__name__)


class OrganizationService:
    """Organization service - business logic only.

    Permission checks and invariants run before any write. Side effects
    (cache invalidation, notifications, audit) run after commit and never
    fail the call.
    """

    def __init__(
        self,
        org_repo: OrganizationRepository,
        member_repo: OrganizationMemberRepository,
        authz: AuthorizationService,
        notifier: NotificationDispatcher,
        cache: EntityCache,
        session: AsyncSession,
        identity: IdentityClient | None = None,
        audit: AuditService | None = None,
        settings: Settings | None = None,
    ):
        self.org_repo = org_repo
        self.member_repo = member_repo
        self.authz = authz
        self.notifier = notifier
        self.cache = cache
        self.session = session
        self.identity = identity
        self.audit = audit
        self.settings = settings or get_settings()

    async def _get_or_raise(self, organization_id: UUID) -> Organization:
        organization = await self.org_repo.get_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        return organization

    async def _require_admin(self, organization_id: UUID, user_id: str, action: str) -> None:
        if not await self.authz.can_manage_members(organization_id, user_id):
            raise UnauthorizedError(f"Only organization admins can {action}")

    async def _ensure_name_available(self, name: str, exclude_id: UUID | None = None) -> None:
        if await self.org_repo.get_active_by_name(name, exclude_id=exclude_id):
            raise InvalidOperationError(f"Organization name '{name}' is already in use")

    async def _snapshot_user(
        self, user_id: str, user_name: str | None, user_email: str | None
    ) -> tuple[str, str | None]:
        """Display name/email to store on a membership row."""
        if user_name:
            return user_name, user_email
        if self.identity is not None:
            profile = await self.identity.get_user_by_id(user_id)
            if profile is not None:
                return profile.display_name, user_email or profile.email
        return user_id, user_email

    async def _emit(
        self, action: AuditAction, organization_id: UUID, user_id: str, **kwargs
    ) -> None:
        if self.audit is not None:
            await self.audit.emit(
                action,
                entity_type="organization",
                entity_id=organization_id,
                user_id=user_id,
                organization_id=organization_id,
                **kwargs,
            )

    async def create_organization(
        self,
        name: str,
        created_by: str,
        display_name: str | None = None,
        description: str | None = None,
        creator_name: str | None = None,
        creator_email: str | None = None,
    ) -> Organization:
        """Create an organization with its creator as the first Admin.

        Raises:
            InvalidInputError: If name or created_by is empty
            InvalidOperationError: If an active organization already uses the name
        """
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("name")
        if not created_by:
            raise InvalidInputError("created_by")

        await self._ensure_name_available(name)
        user_name, user_email = await self._snapshot_user(created_by, creator_name, creator_email)

        organization = Organization(
            name=name,
            display_name=display_name or name,
            description=description,
            max_projects=self.settings.org_default_max_projects,
            max_members=self.settings.org_default_max_members,
            created_by=created_by,
        )
        admin = OrganizationMember(
            organization_id=organization.id,
            user_id=created_by,
            user_name=user_name,
            user_email=user_email,
            role=OrganizationRole.ADMIN.value,
            invited_by=created_by,
        )
        async with transaction(self.session, "create organization"):
            self.org_repo.add(organization)
            await self.session.flush()
            self.member_repo.add(admin)

        logger.info(
            "Organization created",
            organization_id=str(organization.id),
            name=organization.name,
            created_by=created_by,
        )
        await self.cache.remove(CacheKeys.user_organizations(created_by))
        await self._emit(
            AuditAction.ORGANIZATION_CREATE, organization.id, created_by, changes={"name": name}
        )
        return organization

    async def update_organization(
        self,
        organization_id: UUID,
        updated_by: str,
        name: str | None = None,
        display_name: str | None = None,
        description: str | None = None,
    ) -> Organization:
        """Update organization details. Admin only."""
        organization = await self._get_or_raise(organization_id)
        if not await self.authz.can_manage_organization(organization_id, updated_by):
            raise UnauthorizedError("Only organization admins can update the organization")

        changes: dict[str, dict[str, str | None]] = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidInputError("name")
            if name != organization.name:
                await self._ensure_name_available(name, exclude_id=organization_id)
                changes["name"] = {"old": organization.name, "new": name}
        if display_name is not None and display_name != organization.display_name:
            changes["display_name"] = {"old": organization.display_name, "new": display_name}
        if description is not None and description != organization.description:
            changes["description"] = {"old": organization.description, "new": description}

        if not changes:
            return organization

        async with transaction(self.session, "update organization"):
            for field, change in changes.items():
                setattr(organization, field, change["new"])
            organization.updated_by = updated_by
            organization.updated_at = utc_now()

        logger.info(
            "Organization updated",
            organization_id=str(organization_id),
            fields=sorted(changes),
            updated_by=updated_by,
        )
        await self.cache.remove(CacheKeys.organization(organization_id))
        await self._emit(
            AuditAction.ORGANIZATION_UPDATE, organization_id, updated_by, changes=changes
        )
        return organization

    async def delete_organization(self, organization_id: UUID, deleted_by: str) -> None:
        """Delete an organization with its projects and tickets. Admin only.

        Other active members are notified after the delete has committed.
        """
        organization = await self._get_or_raise(organization_id)
        if not await self.authz.can_manage_organization(organization_id, deleted_by):
            raise UnauthorizedError("Only organization admins can delete the organization")

        members = await self.member_repo.list_active(organization_id)
        member_ids = [m.user_id for m in members]
        org_name = organization.name

        async with transaction(self.session, "delete organization"):
            await self.org_repo.delete_cascade(organization)

        logger.info(
            "Organization deleted", organization_id=str(organization_id), deleted_by=deleted_by
        )
        await self.cache.remove(
            CacheKeys.organization(organization_id),
            CacheKeys.organization_projects(organization_id),
            *(CacheKeys.user_organizations(uid) for uid in member_ids),
        )
        await best_effort(
            "notify organization deleted",
            self.notifier.notify_many(
                [uid for uid in member_ids if uid != deleted_by],
                "Organization Deleted",
                f"Organization '{org_name}' has been deleted",
                NotificationType.ORGANIZATION_DELETED,
            ),
            organization_id=str(organization_id),
        )
        await self._emit(AuditAction.ORGANIZATION_DELETE, organization_id, deleted_by)

    async def get_organization(self, organization_id: UUID) -> OrganizationRead:
        """Get an organization (read-through cache)."""

        async def load() -> OrganizationRead | None:
            organization = await self.org_repo.get_by_id(organization_id)
            return OrganizationRead.model_validate(organization) if organization else None

        result = await self.cache.get_or_load(
            CacheKeys.organization(organization_id),
            OrganizationRead,
            load,
            ttl=self.settings.cache_organization_ttl_seconds,
        )
        if result is None:
            raise NotFoundError("Organization", organization_id)
        return result

    async def list_user_organizations(self, user_id: str) -> list[OrganizationRead]:
        """List active organizations the user belongs to (read-through cache)."""

        async def load() -> list[OrganizationRead]:
            organizations = await self.org_repo.list_by_user_membership(user_id)
            return [OrganizationRead.model_validate(o) for o in organizations]

        return await self.cache.get_or_load(
            CacheKeys.user_organizations(user_id),
            list[OrganizationRead],
            load,
            ttl=self.settings.cache_list_ttl_seconds,
        )

    async def add_member(
        self,
        organization_id: UUID,
        user_id: str,
        role: OrganizationRole,
        invited_by: str,
        user_name: str | None = None,
        user_email: str | None = None,
    ) -> OrganizationMember:
        """Add a user to an organization. Admin only.

        A previously removed member is reactivated with the new role.

        Raises:
            InvalidOperationError: If already an active member or the member
                limit is reached
        """
        if not user_id:
            raise InvalidInputError("user_id")
        organization = await self._get_or_raise(organization_id)
        await self._require_admin(organization_id, invited_by, "add members")

        existing = await self.member_repo.get_member(organization_id, user_id)
        if existing is not None and existing.is_active:
            raise InvalidOperationError("User is already a member of this organization")

        active_count = await self.org_repo.count_active_members(organization_id)
        if not within_limit(active_count, organization.max_members):
            raise InvalidOperationError(
                f"Organization has reached its member limit ({organization.max_members})"
            )

        user_name, user_email = await self._snapshot_user(user_id, user_name, user_email)

        async with transaction(self.session, "add organization member"):
            if existing is not None:
                member = existing
                member.is_active = True
                member.role = role.value
                member.joined_at = utc_now()
                member.invited_by = invited_by
                member.user_name = user_name
                member.user_email = user_email
            else:
                member = OrganizationMember(
                    organization_id=organization_id,
                    user_id=user_id,
                    user_name=user_name,
                    user_email=user_email,
                    role=role.value,
                    invited_by=invited_by,
                )
                self.member_repo.add(member)

        logger.info(
            "Organization member added",
            organization_id=str(organization_id),
            user_id=user_id,
            role=role.value,
            reactivated=existing is not None,
        )
        await self.cache.remove(CacheKeys.user_organizations(user_id))
        await best_effort(
            "notify member added",
            self.notifier.notify(
                user_id,
                "Added to Organization",
                f"You have been added to organization '{organization.name}' as {role.value}",
                NotificationType.ORGANIZATION_MEMBER,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_ADD,
            organization_id,
            invited_by,
            changes={"user_id": user_id, "role": role.value},
        )
        return member

    async def update_member_role(
        self,
        organization_id: UUID,
        user_id: str,
        new_role: OrganizationRole,
        updated_by: str,
    ) -> OrganizationMember:
        """Change a member's role. Admin only.

        Raises:
            InvalidOperationError: If this would demote the last active Admin
        """
        organization = await self._get_or_raise(organization_id)
        await self._require_admin(organization_id, updated_by, "change member roles")

        member = await self.member_repo.get_active_member(organization_id, user_id)
        if member is None:
            raise NotFoundError("Organization member", user_id)

        old_role = member.role
        if old_role == new_role.value:
            return member

        if new_role != OrganizationRole.ADMIN:
            admins = await self.member_repo.list_active_admins(organization_id)
            if is_last_admin(admins, user_id):
                raise InvalidOperationError("Cannot demote the last admin of the organization")

        async with transaction(self.session, "update organization member role"):
            member.role = new_role.value

        logger.info(
            "Organization member role changed",
            organization_id=str(organization_id),
            user_id=user_id,
            old_role=old_role,
            new_role=new_role.value,
        )
        await best_effort(
            "notify role changed",
            self.notifier.notify(
                user_id,
                "Role Updated",
                f"Your role in organization '{organization.name}' has been changed "
                f"from {old_role} to {new_role.value}",
                NotificationType.ROLE_CHANGED,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_ROLE_CHANGE,
            organization_id,
            updated_by,
            changes={"user_id": user_id, "old": old_role, "new": new_role.value},
        )
        return member

    async def remove_member(self, organization_id: UUID, user_id: str, removed_by: str) -> None:
        """Deactivate a membership. Admin only.

        Raises:
            InvalidOperationError: If the member is the last active Admin
        """
        organization = await self._get_or_raise(organization_id)
        await self._require_admin(organization_id, removed_by, "remove members")

        member = await self.member_repo.get_active_member(organization_id, user_id)
        if member is None:
            raise NotFoundError("Organization member", user_id)

        admins = await self.member_repo.list_active_admins(organization_id)
        if is_last_admin(admins, user_id):
            raise InvalidOperationError("Cannot remove the last admin of the organization")

        async with transaction(self.session, "remove organization member"):
            member.is_active = False

        logger.info(
            "Organization member removed",
            organization_id=str(organization_id),
            user_id=user_id,
            removed_by=removed_by,
        )
        await self.cache.remove(CacheKeys.user_organizations(user_id))
        await best_effort(
            "notify member removed",
            self.notifier.notify(
                user_id,
                "Removed from Organization",
                f"You have been removed from organization '{organization.name}'",
                NotificationType.ORGANIZATION_MEMBER,
            ),
            user_id=user_id,
        )
        await self._emit(
            AuditAction.MEMBER_REMOVE, organization_id, removed_by, changes={"user_id": user_id}
        )

    async def list_members(self, organization_id: UUID) -> list[OrganizationMember]:
        """List active members of an organization."""
        await self._get_or_raise(organization_id)
        return await self.member_repo.list_active(organization_id)

    async def get_project_limits(self, organization_id: UUID) -> LimitUsage:
        """Current project count against the organization's maximum."""
        organization = await self._get_or_raise(organization_id)
        current = await self.org_repo.count_projects(organization_id)
        return LimitUsage(current=current, maximum=organization.max_projects)

    async def get_member_limits(self, organization_id: UUID) -> LimitUsage:
        """Current active member count against the organization's maximum."""
        organization = await self._get_or_raise(organization_id)
        current = await self.org_repo.count_active_members(organization_id)
        return LimitUsage(current=current, maximum=organization.max_members)
