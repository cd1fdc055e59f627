"""Isolation boundary for post-commit side effects."""

from collections.abc import Awaitable
from typing import Any, TypeVar

from src.ticketing.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def best_effort(effect: str, awaitable: Awaitable[T], **log_fields: Any) -> T | None:
    """Await a side effect, logging and swallowing any failure.

    Used once the primary mutation has committed: a failed notification,
    cache invalidation or audit write must not fail the operation.
    """
    try:
        return await awaitable
    except Exception as e:
        logger.warning("Side effect failed", effect=effect, error=str(e), **log_fields)
        return None
