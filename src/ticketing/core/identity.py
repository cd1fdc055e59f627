"""Identity-provider client for user display data.

Talks to a Keycloak-style admin REST API with a client-credentials token.
Profiles only enrich display data (member name/email snapshots); they are
never consulted for authorization.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.ticketing.core.cache import CacheKeys, EntityCache
from src.ticketing.core.config import Settings, get_settings
from src.ticketing.core.exceptions import InfrastructureError
from src.ticketing.core.logging import get_logger
from src.ticketing.schemas.user import UserProfile

logger = get_logger(__name__)


class TokenCache:
    """Access token with explicit expiry, refreshed lazily.

    Reads are lock-free while the token is valid. Only the refresh runs under
    the lock, and concurrent callers that queued behind a refresh reuse its
    result instead of fetching again.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[tuple[str, int]]],
        refresh_margin_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch = fetch
        self._refresh_margin = refresh_margin_seconds
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    def _is_valid(self) -> bool:
        return self._token is not None and self._clock() < self._expires_at - self._refresh_margin

    async def get_token(self) -> str:
        """Return a valid token, fetching a new one if needed."""
        if self._is_valid():
            return self._token  # type: ignore[return-value]

        async with self._lock:
            if self._is_valid():
                return self._token  # type: ignore[return-value]
            token, expires_in = await self._fetch()
            self._token = token
            self._expires_at = self._clock() + expires_in
            logger.debug("Identity token refreshed", expires_in=expires_in)
            return token

    def invalidate(self) -> None:
        """Drop the cached token so the next call fetches a new one."""
        self._token = None
        self._expires_at = 0.0


def _to_profile(data: dict[str, Any]) -> UserProfile:
    first_name = data.get("firstName")
    last_name = data.get("lastName")
    username = data.get("username") or data["id"]
    display_name = " ".join(part for part in (first_name, last_name) if part) or username
    return UserProfile(
        id=data["id"],
        username=username,
        display_name=display_name,
        email=data.get("email"),
        first_name=first_name,
        last_name=last_name,
        active=data.get("enabled", True),
    )


class IdentityClient:
    """Read-only user lookup against the identity provider.

    Owns its HTTP client and its TokenCache; create one per process and close
    it with aclose() (or use it as an async context manager).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: EntityCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache or EntityCache()
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.identity_timeout_seconds)
        )
        self._tokens = TokenCache(
            self._fetch_token,
            refresh_margin_seconds=self.settings.identity_token_refresh_margin_seconds,
        )

    async def __aenter__(self) -> "IdentityClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def _realm_url(self) -> str:
        return f"{self.settings.identity_base_url}/realms/{self.settings.identity_realm}"

    @property
    def _admin_url(self) -> str:
        return f"{self.settings.identity_base_url}/admin/realms/{self.settings.identity_realm}"

    async def _fetch_token(self) -> tuple[str, int]:
        try:
            response = await self._http.post(
                f"{self._realm_url}/protocol/openid-connect/token",
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.settings.identity_client_id,
                    "client_secret": self.settings.identity_client_secret,
                },
            )
            response.raise_for_status()
            payload = response.json()
            return payload["access_token"], int(payload.get("expires_in", 60))
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Identity token request failed", error=str(e))
            raise InfrastructureError("Identity provider token request failed") from e

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET an admin API path, retrying once with a fresh token on 401."""
        for attempt in range(2):
            token = await self._tokens.get_token()
            try:
                response = await self._http.get(
                    f"{self._admin_url}/{path}",
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.HTTPError as e:
                logger.error("Identity provider unreachable", path=path, error=str(e))
                raise InfrastructureError("Identity provider request failed") from e

            if response.status_code == 401 and attempt == 0:
                self._tokens.invalidate()
                continue
            return response
        return response

    async def get_user_by_id(self, user_id: str) -> UserProfile | None:
        """Get a user's profile, or None if the provider does not know the id."""
        if not user_id:
            return None

        key = CacheKeys.user_profile(user_id)
        cached = await self.cache.get(key, UserProfile)
        if cached is not None:
            return cached

        response = await self._get(f"users/{user_id}")
        if response.status_code == 404:
            return None
        if response.is_error:
            logger.warning("Identity lookup failed", user_id=user_id, status=response.status_code)
            raise InfrastructureError(f"Identity lookup failed with status {response.status_code}")

        profile = _to_profile(response.json())
        await self.cache.set(key, profile, self.settings.identity_cache_ttl_seconds)
        return profile

    async def search_users(self, term: str, max_results: int = 20) -> list[UserProfile]:
        """Search users by name, username or email."""
        if not term or not term.strip():
            return []

        response = await self._get("users", params={"search": term.strip(), "max": max_results})
        if response.is_error:
            logger.warning("Identity search failed", status=response.status_code)
            raise InfrastructureError(f"Identity search failed with status {response.status_code}")
        return [_to_profile(item) for item in response.json()]

    async def get_users_by_ids(self, user_ids: list[str]) -> dict[str, UserProfile]:
        """Batch lookup. Unknown ids are left out of the result."""
        unique_ids = list(dict.fromkeys(uid for uid in user_ids if uid))
        profiles = await asyncio.gather(*(self.get_user_by_id(uid) for uid in unique_ids))
        return {uid: p for uid, p in zip(unique_ids, profiles, strict=True) if p is not None}
