"""Repository for Notification entity."""

from typing import Any, cast

from sqlalchemy import func, update
from sqlalchemy.engine import CursorResult
from sqlmodel import col, select

from src.ticketing.models import Notification
from src.ticketing.models.base import utc_now
from src.ticketing.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for user-owned notifications."""

    model = Notification

    async def list_by_user(
        self,
        user_id: str,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Notification], str | None, bool]:
        """List a user's notifications, newest first.

        Returns:
            Tuple of (notifications, next_cursor, has_more)
        """
        query = select(Notification).where(Notification.user_id == user_id)
        return await self.paginate(query, cursor, limit, Notification.created_at)

    async def list_unread(self, user_id: str) -> list[Notification]:
        """List a user's unread notifications, newest first."""
        result = await self.session.execute(
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
            .order_by(col(Notification.created_at).desc())
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: str) -> int:
        """Count a user's unread notifications."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read == False,  # noqa: E712
            )
        )
        return result.scalar_one()

    def mark_read(self, notification: Notification) -> None:
        """Mark one notification read (no commit)."""
        if notification.is_read:
            return
        notification.is_read = True
        notification.read_at = utc_now()
        self.session.add(notification)

    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user read (no commit).

        Returns:
            Number of notifications updated
        """
        result = await self.session.execute(
            update(Notification)
            .where(
                col(Notification.user_id) == user_id,
                col(Notification.is_read) == False,  # noqa: E712
            )
            .values(is_read=True, read_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return cast(CursorResult[Any], result).rowcount or 0

