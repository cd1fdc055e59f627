"""Root test fixtures shared across all test types.

Unit tests (tests/unit) use mocks only. Service and repository tests use an
in-memory aiosqlite database plus fakeredis.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine

from src.ticketing.core import redis as redis_core
from src.ticketing.core.cache import EntityCache
from src.ticketing.core.config import get_settings
from src.ticketing.core.db import get_session, init_db
from src.ticketing.services import Services, build_services

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()

# Every module that imported get_redis by name
_GET_REDIS_TARGETS = (
    "src.ticketing.core.redis.get_redis",
    "src.ticketing.core.cache.get_redis",
    "src.ticketing.services.notification_service.get_redis",
)


# --- Redis Test Fixtures ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing."""
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def mock_redis(fake_redis: Redis, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Redis]:
    """Patches get_redis() to return the fakeredis client everywhere."""
    redis_core.reset_redis_state()

    async def _get_fake_redis() -> Redis:
        return fake_redis

    for target in _GET_REDIS_TARGETS:
        monkeypatch.setattr(target, _get_fake_redis)
    yield fake_redis
    redis_core.reset_redis_state()


@pytest.fixture
async def mock_redis_unavailable(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Patches get_redis() to return None (simulates Redis unavailable)."""
    redis_core.reset_redis_state()

    async def _get_none() -> None:
        return None

    for target in _GET_REDIS_TARGETS:
        monkeypatch.setattr(target, _get_none)
    yield
    redis_core.reset_redis_state()


# --- Database Fixtures ---


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory database with every table created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with get_session(engine) as session:
        yield session


@pytest.fixture
async def audit_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Separate session for the audit sink."""
    async with get_session(engine) as session:
        yield session


# --- Service Fixtures ---


@pytest.fixture
def cache() -> EntityCache:
    return EntityCache(default_ttl=300, retry_interval=60)


@pytest.fixture
def services(session: AsyncSession, cache: EntityCache, mock_redis: Redis) -> Services:
    """Services over fakeredis, without an audit sink."""
    return build_services(session, cache=cache)


@pytest.fixture
async def organization(services: Services):
    """Organization 'acme' whose only admin is 'owner'."""
    return await services.organizations.create_organization("acme", "owner", creator_name="Owner")


@pytest.fixture
async def project(services: Services, organization):
    """Project in ``organization`` created (and administered) by 'owner'."""
    return await services.projects.create_project(organization.id, "Platform", "owner")
