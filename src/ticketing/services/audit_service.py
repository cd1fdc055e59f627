"""Audit event sink - records who changed what, for compliance."""

import contextlib
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.ticketing.core.audit_context import get_audit_context
from src.ticketing.core.logging import get_logger
from src.ticketing.models import AuditAction, AuditLog, AuditStatus
from src.ticketing.repositories import AuditLogRepository

logger = get_logger(__name__)


class AuditService:
    """Service for recording audit logs.

    Fire-and-forget design: a failed write is logged and swallowed so it never
    fails the business operation. Give it its own session so a rollback here
    cannot touch the caller's transaction.
    """

    def __init__(self, audit_repo: AuditLogRepository, session: AsyncSession):
        self.audit_repo = audit_repo
        self.session = session

    async def emit(
        self,
        action: AuditAction | str,
        entity_type: str,
        entity_id: UUID | None = None,
        user_id: str | None = None,
        changes: dict[str, Any] | None = None,
        organization_id: UUID | None = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        error_message: str | None = None,
    ) -> AuditLog | None:
        """Record an audit event.

        Request metadata (IP, user agent, request id) comes from the audit
        context when the transport layer has set one.

        Returns:
            The created AuditLog, or None if recording failed
        """
        action_value = action.value if isinstance(action, AuditAction) else action
        try:
            ctx = get_audit_context()
            audit_log = AuditLog(
                organization_id=organization_id,
                user_id=user_id,
                action=action_value,
                entity_type=entity_type,
                entity_id=entity_id,
                changes=changes,
                ip_address=ctx.ip_address if ctx else None,
                user_agent=ctx.user_agent if ctx else None,
                request_id=ctx.request_id if ctx else None,
                status=status.value,
                error_message=error_message[:1000] if error_message else None,
            )

            self.audit_repo.add(audit_log)
            await self.session.commit()

            logger.debug(
                "Audit log recorded",
                action=action_value,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id else None,
            )
            return audit_log

        except Exception as e:
            logger.warning(
                "Failed to record audit log",
                action=action_value,
                entity_type=entity_type,
                error=str(e),
            )
            with contextlib.suppress(Exception):
                await self.session.rollback()
            return None

    async def list_organization_logs(
        self,
        organization_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action: str | None = None,
        user_id: str | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs recorded for an organization."""
        return await self.audit_repo.list_by_organization(
            organization_id=organization_id,
            cursor=cursor,
            limit=limit,
            action=action,
            user_id=user_id,
        )

    async def list_entity_history(
        self,
        entity_type: str,
        entity_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs for a specific entity."""
        return await self.audit_repo.list_by_entity(
            entity_type=entity_type,
            entity_id=entity_id,
            cursor=cursor,
            limit=limit,
        )
