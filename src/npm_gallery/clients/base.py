"""Shared plumbing for upstream registry HTTP clients.

Each client owns one lazily created `httpx.AsyncClient` and one response
cache, and normalizes every transport or HTTP failure into `ApiError`.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from npm_gallery.cache import TTLCache
from npm_gallery.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, DEFAULT_USER_AGENT
from npm_gallery.exceptions import ApiError, ApiErrorType
from npm_gallery.logging import get_logger

logger = get_logger(__name__)


def encode_package_name(name: str) -> str:
    """URL-encode an npm package name, keeping the leading '@' of scoped names."""
    if name.startswith("@"):
        return "@" + quote(name[1:], safe="")
    return quote(name, safe="")


class BaseApiClient:
    """Base class for upstream API clients.

    Attributes:
        name: Short client identifier used in errors and logs.
        base_url: Root URL that relative request paths resolve against.
    """

    name: str = "api"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        cache: TTLCache | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent
        self._cache = cache if cache is not None else TTLCache()
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": self._user_agent,
                },
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def clear_cache(self) -> None:
        self._cache.clear()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send a request and raise ApiError for transport failures and non-2xx codes."""
        client = self._get_client()
        try:
            response = await client.request(method, url, params=params, json=json)
        except httpx.TimeoutException as e:
            raise ApiError(
                f"Request timed out: {url}", self.name, ApiErrorType.TIMEOUT
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(
                f"Network error: {e}", self.name, ApiErrorType.NETWORK_ERROR
            ) from e

        status = response.status_code
        if status == 404:
            raise ApiError(f"Not found: {url}", self.name, ApiErrorType.NOT_FOUND, status)
        if status == 429:
            raise ApiError("Rate limited", self.name, ApiErrorType.RATE_LIMITED, status)
        if status >= 400:
            raise ApiError(
                f"HTTP {status} for {url}", self.name, ApiErrorType.SERVER_ERROR, status
            )
        return response

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON from {response.url}",
                self.name,
                ApiErrorType.INVALID_RESPONSE,
                response.status_code,
            ) from e

    async def _get_json(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        cache_key: str | None = None,
        ttl: float | None = None,
    ) -> Any:
        """GET and decode JSON, serving from the response cache when `cache_key` is given."""
        if cache_key is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit: {cache_key}", extra={"client": self.name})
                return cached

        data = self._decode(await self._request("GET", url, params=params))

        if cache_key is not None:
            self._cache.set(cache_key, data, ttl=ttl)
        return data

    async def _post_json(self, url: str, payload: Any) -> Any:
        return self._decode(await self._request("POST", url, json=payload))

    async def _get_text(self, url: str) -> str:
        return (await self._request("GET", url)).text
