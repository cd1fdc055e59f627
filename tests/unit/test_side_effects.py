"""Unit tests for best_effort side effects."""

from unittest.mock import AsyncMock

import pytest

from src.ticketing.core.exceptions import InfrastructureError
from src.ticketing.services.side_effects import best_effort

pytestmark = pytest.mark.unit


async def test_returns_result():
    effect = AsyncMock(return_value=3)

    assert await best_effort("count", effect()) == 3


async def test_swallows_failure():
    effect = AsyncMock(side_effect=InfrastructureError("redis down"))

    assert await best_effort("notify", effect(), ticket_id="t1") is None
    effect.assert_awaited_once()
