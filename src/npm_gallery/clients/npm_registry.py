"""Client for the public npm registry and the npm downloads API."""

from __future__ import annotations

from typing import Any

from npm_gallery.clients.base import BaseApiClient, encode_package_name
from npm_gallery.constants import (
    CACHE_TTL_DOWNLOADS_SECONDS,
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    CACHE_TTL_SEARCH_SECONDS,
    NPM_DOWNLOADS_URL,
    NPM_REGISTRY_URL,
)
from npm_gallery.exceptions import ApiError
from npm_gallery.logging import get_logger

logger = get_logger(__name__)

# (quality, popularity, maintenance) weights for /-/v1/search
SEARCH_WEIGHTS: dict[str, tuple[float, float, float]] = {
    "relevance": (0.65, 0.98, 0.5),
    "popularity": (0.1, 1.0, 0.1),
    "quality": (1.0, 0.5, 0.5),
    "maintenance": (0.5, 0.5, 1.0),
}


class NpmRegistryClient(BaseApiClient):
    """npm registry: packuments, search, and weekly download counts."""

    name = "npm-registry"

    def __init__(self, base_url: str = NPM_REGISTRY_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def get_package(self, name: str) -> dict[str, Any]:
        """Fetch the full packument (`GET /{name}`)."""
        return await self._get_json(
            f"/{encode_package_name(name)}",
            cache_key=f"package:{name}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )

    async def search(
        self,
        text: str,
        *,
        from_: int = 0,
        size: int = 20,
        sort_by: str = "relevance",
    ) -> dict[str, Any]:
        """Query `/-/v1/search`, weighting scores by the requested sort.

        Unknown sort values use the relevance weights.
        """
        quality, popularity, maintenance = SEARCH_WEIGHTS.get(sort_by, SEARCH_WEIGHTS["relevance"])
        params = {
            "text": text,
            "from": from_,
            "size": size,
            "quality": quality,
            "popularity": popularity,
            "maintenance": maintenance,
        }
        return await self._get_json(
            "/-/v1/search",
            params=params,
            cache_key=f"search:{text}:{from_}:{size}:{sort_by}",
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )

    async def get_downloads(self, name: str, period: str = "last-week") -> int:
        """Download count for `period`; 0 when the downloads API fails."""
        try:
            data = await self._get_json(
                f"{NPM_DOWNLOADS_URL}/point/{period}/{encode_package_name(name)}",
                cache_key=f"downloads:{period}:{name}",
                ttl=CACHE_TTL_DOWNLOADS_SECONDS,
            )
        except ApiError as e:
            logger.debug(f"Downloads unavailable for {name}: {e}")
            return 0
        return int(data.get("downloads") or 0)
