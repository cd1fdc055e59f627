"""Notification dispatcher - persist first, then push best-effort."""

import asyncio
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.ticketing.core.config import Settings, get_settings
from src.ticketing.core.db import transaction
from src.ticketing.core.exceptions import NotFoundError, UnauthorizedError
from src.ticketing.core.logging import get_logger
from src.ticketing.core.redis import get_redis
from src.ticketing.models import Notification, NotificationType
from src.ticketing.repositories import NotificationRepository
from src.ticketing.schemas.notification import NotificationEvent, NotificationRead

logger = get_logger(__name__)


class NotificationDispatcher:
    """Creates user-owned notifications and pushes them to connected clients.

    A notification is committed before the push is attempted. The push is
    fire-and-forget: a failed or skipped push leaves the stored notification
    in place, available by polling.

    Every operation runs on its own short-lived session, so a failed
    notification write never rolls back (or expires) the caller's session.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def _repository(self) -> AsyncGenerator[NotificationRepository]:
        async with self.session_factory() as session:
            yield NotificationRepository(session)

    def _channel(self, user_id: str) -> str:
        return f"{self.settings.notification_push_channel_prefix}:{user_id}"

    async def push_to_user(self, user_id: str, event: NotificationEvent) -> bool:
        """Publish an event on the user's channel.

        Returns:
            True if published, False if Redis is unavailable or the publish failed
        """
        redis = await get_redis()
        if redis is None:
            return False
        try:
            await redis.publish(self._channel(user_id), event.model_dump_json())
        except (RedisError, OSError) as e:
            logger.warning("Notification push failed", user_id=user_id, error=str(e))
            return False
        return True

    async def _push(self, notification: Notification) -> bool:
        event = NotificationEvent(data=NotificationRead.model_validate(notification))
        return await self.push_to_user(notification.user_id, event)

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType,
        related_ticket_id: UUID | None = None,
    ) -> Notification:
        """Persist one notification, then push it."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type.value,
            related_ticket_id=related_ticket_id,
        )
        async with self._repository() as repo:
            async with transaction(repo.session, "create notification"):
                repo.add(notification)

        logger.debug("Notification created", user_id=user_id, type=type.value)
        await self._push(notification)
        return notification

    async def notify_many(
        self,
        user_ids: Iterable[str],
        title: str,
        message: str,
        type: NotificationType,
        related_ticket_id: UUID | None = None,
    ) -> list[Notification]:
        """Fan out one message to several users.

        All rows are committed together; pushes then run concurrently.
        """
        notifications = [
            Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=type.value,
                related_ticket_id=related_ticket_id,
            )
            for user_id in dict.fromkeys(user_ids)
            if user_id
        ]
        if not notifications:
            return []

        async with self._repository() as repo:
            async with transaction(repo.session, "create notifications"):
                for notification in notifications:
                    repo.add(notification)

        logger.debug("Notifications created", count=len(notifications), type=type.value)
        await asyncio.gather(*(self._push(n) for n in notifications))
        return notifications

    async def list_notifications(
        self, user_id: str, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Notification], str | None, bool]:
        """List a user's notifications with cursor-based pagination."""
        async with self._repository() as repo:
            return await repo.list_by_user(user_id, cursor, limit)

    async def list_unread(self, user_id: str) -> list[Notification]:
        async with self._repository() as repo:
            return await repo.list_unread(user_id)

    async def count_unread(self, user_id: str) -> int:
        async with self._repository() as repo:
            return await repo.count_unread(user_id)

    async def mark_as_read(self, notification_id: UUID, user_id: str) -> Notification:
        """Mark a notification read. Only its recipient may do so.

        Raises:
            NotFoundError: If the notification does not exist
            UnauthorizedError: If it belongs to another user
        """
        async with self._repository() as repo:
            notification = await repo.get_by_id(notification_id)
            if notification is None:
                raise NotFoundError("Notification", notification_id)
            if notification.user_id != user_id:
                raise UnauthorizedError("Cannot modify another user's notification")

            async with transaction(repo.session, "mark notification read"):
                repo.mark_read(notification)
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark all of a user's notifications read. Returns the number updated."""
        async with self._repository() as repo:
            async with transaction(repo.session, "mark all notifications read"):
                updated = await repo.mark_all_read(user_id)
        logger.debug("Notifications marked read", user_id=user_id, count=updated)
        return updated
