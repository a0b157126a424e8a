"""Client for the npms.io v2 API."""

from __future__ import annotations

from typing import Any

from npm_gallery.clients.base import BaseApiClient, encode_package_name
from npm_gallery.constants import (
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    CACHE_TTL_SEARCH_SECONDS,
    NPMS_API_URL,
    NPMS_MAX_SEARCH_SIZE,
    NPMS_MAX_SUGGESTIONS,
    NPMS_MGET_BATCH_SIZE,
)


class NpmsClient(BaseApiClient):
    """npms.io search, suggestions, analysis and bulk lookups."""

    name = "npms-io"

    def __init__(self, base_url: str = NPMS_API_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def search(self, query: str, *, from_: int = 0, size: int = 20) -> dict[str, Any]:
        size = min(size, NPMS_MAX_SEARCH_SIZE)
        return await self._get_json(
            "/search",
            params={"q": query, "from": from_, "size": size},
            cache_key=f"search:{query}:{from_}:{size}",
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )

    async def suggestions(self, query: str, size: int = 10) -> list[dict[str, Any]]:
        size = min(size, NPMS_MAX_SUGGESTIONS)
        return await self._get_json(
            "/search/suggestions",
            params={"q": query, "size": size},
            cache_key=f"suggestions:{query}:{size}",
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )

    async def get_package(self, name: str) -> dict[str, Any]:
        """Fetch the analysis document (`collected`, `evaluation`, `score`)."""
        return await self._get_json(
            f"/package/{encode_package_name(name)}",
            cache_key=f"package:{name}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )

    async def mget(self, names: list[str]) -> dict[str, Any]:
        """Bulk analysis lookup, batched to the endpoint's limit.

        Returns:
            Mapping of package name to analysis document.
        """
        results: dict[str, Any] = {}
        for start in range(0, len(names), NPMS_MGET_BATCH_SIZE):
            batch = names[start : start + NPMS_MGET_BATCH_SIZE]
            results.update(await self._post_json("/package/mget", batch))
        return results
