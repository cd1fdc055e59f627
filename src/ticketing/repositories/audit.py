"""Repository for AuditLog entity."""

from uuid import UUID

from sqlmodel import select

from src.ticketing.models import AuditLog
from src.ticketing.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Repository for AuditLog entity."""

    model = AuditLog

    async def list_by_organization(
        self,
        organization_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action: str | None = None,
        user_id: str | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs for an organization with cursor pagination.

        Args:
            organization_id: Organization to filter by
            cursor: Pagination cursor
            limit: Maximum items to return
            action: Optional action type filter
            user_id: Optional user filter

        Returns:
            Tuple of (logs, next_cursor, has_more)
        """
        query = select(AuditLog).where(AuditLog.organization_id == organization_id)

        if action:
            query = query.where(AuditLog.action == action)
        if user_id:
            query = query.where(AuditLog.user_id == user_id)

        return await self.paginate(query, cursor, limit, AuditLog.created_at)

    async def list_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs for one entity (e.g. "ticket", ticket id)."""
        query = select(AuditLog).where(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == entity_id,
        )
        return await self.paginate(query, cursor, limit, AuditLog.created_at)

