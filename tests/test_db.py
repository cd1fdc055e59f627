"""Tests for database engine and transaction helpers (src/ticketing/core/db)."""

import pytest
from sqlalchemy import select

from src.ticketing.core.db import dispose_engine, get_engine, transaction
from src.ticketing.core.db import engine as engine_module
from src.ticketing.core.exceptions import InfrastructureError, InvalidOperationError
from src.ticketing.models import Notification


def _notification(title: str) -> Notification:
    return Notification(user_id="u1", title=title, message="m", type="comment_added")


class TestTransaction:
    """Tests for transaction()."""

    async def test_commits_on_success(self, session):
        async with transaction(session, "create"):
            session.add(_notification("kept"))

        await session.rollback()
        rows = (await session.execute(select(Notification))).scalars().all()
        assert [n.title for n in rows] == ["kept"]

    async def test_domain_error_rolls_back_and_propagates(self, session):
        with pytest.raises(InvalidOperationError):
            async with transaction(session, "create"):
                session.add(_notification("dropped"))
                await session.flush()
                raise InvalidOperationError("rule violated")

        assert (await session.execute(select(Notification))).scalars().all() == []

    async def test_other_errors_become_infrastructure_errors(self, session):
        with pytest.raises(InfrastructureError) as exc_info:
            async with transaction(session, "create"):
                raise RuntimeError("driver exploded")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "create" in exc_info.value.message


class TestEngine:
    """Tests for the engine singleton."""

    async def test_get_engine_is_singleton_until_disposed(self):
        await dispose_engine()

        first = get_engine()
        assert get_engine() is first

        await dispose_engine()
        assert engine_module._engine is None
