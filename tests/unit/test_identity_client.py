"""Unit tests for TokenCache and IdentityClient (HTTP mocked with MockTransport)."""

import asyncio

import httpx
import pytest

from src.ticketing.core.cache import EntityCache
from src.ticketing.core.config import Settings
from src.ticketing.core.exceptions import InfrastructureError
from src.ticketing.core.identity import IdentityClient, TokenCache

pytestmark = pytest.mark.unit

BASE_URL = "http://idp.test"
TOKEN_URL = f"{BASE_URL}/realms/tickets/protocol/openid-connect/token"
ADMIN_URL = f"{BASE_URL}/admin/realms/tickets"

USER_1 = {
    "id": "kc-1",
    "username": "ada",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "enabled": True,
}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTokenCache:
    """Tests for TokenCache."""

    async def test_concurrent_callers_share_one_fetch(self):
        fetches = 0

        async def fetch():
            nonlocal fetches
            fetches += 1
            await asyncio.sleep(0.01)
            return f"token-{fetches}", 300

        tokens = TokenCache(fetch)

        results = await asyncio.gather(*(tokens.get_token() for _ in range(10)))

        assert fetches == 1
        assert set(results) == {"token-1"}

    async def test_refreshes_inside_margin(self):
        clock = FakeClock()
        fetches = 0

        async def fetch():
            nonlocal fetches
            fetches += 1
            return f"token-{fetches}", 60

        tokens = TokenCache(fetch, refresh_margin_seconds=10, clock=clock)

        assert await tokens.get_token() == "token-1"
        clock.now += 45
        assert await tokens.get_token() == "token-1"
        clock.now += 10
        assert await tokens.get_token() == "token-2"

    async def test_invalidate_forces_fetch(self):
        fetches = 0

        async def fetch():
            nonlocal fetches
            fetches += 1
            return "t", 300

        tokens = TokenCache(fetch)
        await tokens.get_token()
        tokens.invalidate()
        await tokens.get_token()

        assert fetches == 2


def _settings() -> Settings:
    return Settings(
        identity_base_url=BASE_URL,
        identity_realm="tickets",
        identity_client_id="ticketing",
        identity_client_secret="secret",
    )


def _client(handler) -> IdentityClient:
    return IdentityClient(
        settings=_settings(),
        cache=EntityCache(default_ttl=60, retry_interval=60),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _token_response() -> httpx.Response:
    return httpx.Response(200, json={"access_token": "abc", "expires_in": 300})


@pytest.mark.usefixtures("mock_redis_unavailable")
class TestIdentityClient:
    """Tests for IdentityClient."""

    async def test_get_user_by_id(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if str(request.url) == TOKEN_URL:
                return _token_response()
            assert request.headers["Authorization"] == "Bearer abc"
            return httpx.Response(200, json=USER_1)

        async with _client(handler) as client:
            profile = await client.get_user_by_id("kc-1")

        assert profile is not None
        assert profile.display_name == "Ada Lovelace"
        assert profile.email == "ada@example.com"
        assert str(requests[1].url) == f"{ADMIN_URL}/users/kc-1"

    async def test_unknown_user_returns_none(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == TOKEN_URL:
                return _token_response()
            return httpx.Response(404)

        async with _client(handler) as client:
            assert await client.get_user_by_id("missing") is None

    async def test_server_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == TOKEN_URL:
                return _token_response()
            return httpx.Response(503)

        async with _client(handler) as client:
            with pytest.raises(InfrastructureError):
                await client.get_user_by_id("kc-1")

    async def test_token_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        async with _client(handler) as client:
            with pytest.raises(InfrastructureError):
                await client.get_user_by_id("kc-1")

    async def test_retries_once_after_401(self):
        token_calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal token_calls
            if str(request.url) == TOKEN_URL:
                token_calls += 1
                return _token_response()
            if token_calls == 1:
                return httpx.Response(401)
            return httpx.Response(200, json=USER_1)

        async with _client(handler) as client:
            profile = await client.get_user_by_id("kc-1")

        assert profile is not None
        assert token_calls == 2

    async def test_search_users(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == TOKEN_URL:
                return _token_response()
            assert request.url.params["search"] == "ada"
            return httpx.Response(200, json=[USER_1, {"id": "kc-2", "username": "bob"}])

        async with _client(handler) as client:
            profiles = await client.search_users("  ada ")

        assert [p.id for p in profiles] == ["kc-1", "kc-2"]
        assert profiles[1].display_name == "bob"

    async def test_blank_search_makes_no_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            assert await client.search_users("   ") == []

    async def test_get_users_by_ids_skips_unknown(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == TOKEN_URL:
                return _token_response()
            if request.url.path.endswith("/kc-1"):
                return httpx.Response(200, json=USER_1)
            return httpx.Response(404)

        async with _client(handler) as client:
            profiles = await client.get_users_by_ids(["kc-1", "kc-9", "kc-1", ""])

        assert list(profiles) == ["kc-1"]
