"""Read-through entity cache with Redis backend and graceful fallback.

The cache is an optimization, never a correctness dependency. When Redis is
unavailable every read is a miss and every write or removal is skipped. After
a failed operation the cache is bypassed for ``retry_interval`` seconds so a
flapping Redis does not add latency to every request.
"""

import time
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json
from redis.exceptions import RedisError

from src.ticketing.core.config import get_settings
from src.ticketing.core.logging import get_logger
from src.ticketing.core.redis import get_redis

logger = get_logger(__name__)


class CacheKeys:
    """Cache key builders. Keys are ``<kind>:<id>[:<list>]``."""

    @staticmethod
    def organization(organization_id: UUID) -> str:
        return f"org:{organization_id}"

    @staticmethod
    def organization_projects(organization_id: UUID) -> str:
        return f"org:{organization_id}:projects"

    @staticmethod
    def project(project_id: UUID) -> str:
        return f"project:{project_id}"

    @staticmethod
    def ticket(ticket_id: UUID) -> str:
        return f"ticket:{ticket_id}"

    @staticmethod
    def user_profile(user_id: str) -> str:
        return f"user:{user_id}"

    @staticmethod
    def user_projects(user_id: str) -> str:
        return f"user:{user_id}:projects"

    @staticmethod
    def user_organizations(user_id: str) -> str:
        return f"user:{user_id}:organizations"


class EntityCache:
    """Typed key/value cache over Redis.

    Values are serialized with pydantic and validated back into ``value_type``
    on read, so callers get typed objects (``ProjectRead``, ``list[OrganizationRead]``).
    """

    def __init__(
        self,
        default_ttl: int | None = None,
        retry_interval: int | None = None,
    ):
        settings = get_settings()
        self.default_ttl = default_ttl or settings.cache_default_ttl_seconds
        self.retry_interval = (
            retry_interval
            if retry_interval is not None
            else settings.cache_retry_interval_seconds
        )
        self._disabled_until = 0.0
        self._adapters: dict[Any, TypeAdapter[Any]] = {}

    @property
    def is_disabled(self) -> bool:
        """Whether the cache is currently bypassed after a failure."""
        return time.monotonic() < self._disabled_until

    async def _client(self):
        if self.is_disabled:
            return None
        return await get_redis()

    def _adapter(self, value_type: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(value_type)
        if adapter is None:
            adapter = TypeAdapter(value_type)
            self._adapters[value_type] = adapter
        return adapter

    def _handle_failure(self, exc: Exception, operation: str, key: str) -> None:
        self._disabled_until = time.monotonic() + self.retry_interval
        logger.warning(
            "Cache operation failed, bypassing cache",
            operation=operation,
            key=key,
            retry_in_seconds=self.retry_interval,
            error=str(exc),
        )

    async def get(self, key: str, value_type: Any) -> Any | None:
        """Get a cached value.

        Returns:
            The value validated as ``value_type``, or None on miss,
            unavailability or an unreadable payload.
        """
        redis = await self._client()
        if redis is None:
            return None

        try:
            raw = await redis.get(key)
        except (RedisError, OSError) as e:
            self._handle_failure(e, "get", key)
            return None

        if raw is None:
            logger.debug("Cache miss", key=key)
            return None

        try:
            return self._adapter(value_type).validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry", key=key)
            await self.remove(key)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value with a TTL.

        Returns:
            True if stored, False if the cache is unavailable.
        """
        redis = await self._client()
        if redis is None:
            return False

        try:
            await redis.setex(key, ttl or self.default_ttl, to_json(value))
        except (RedisError, OSError) as e:
            self._handle_failure(e, "set", key)
            return False
        return True

    async def remove(self, *keys: str) -> int:
        """Invalidate keys.

        Returns:
            Number of keys removed (0 if the cache is unavailable).
        """
        if not keys:
            return 0
        redis = await self._client()
        if redis is None:
            return 0

        try:
            removed = await redis.delete(*keys)
        except (RedisError, OSError) as e:
            self._handle_failure(e, "remove", ",".join(keys))
            return 0
        logger.debug("Cache invalidated", keys=list(keys), removed=removed)
        return removed

    async def get_or_load(
        self,
        key: str,
        value_type: Any,
        loader: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any | None:
        """Read-through: return the cached value or load, store and return it.

        ``None`` results from the loader are not cached.
        """
        cached = await self.get(key, value_type)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None:
            await self.set(key, value, ttl)
        return value
