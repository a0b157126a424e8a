"""Client for the NuGet V3 API.

Endpoints are discovered from the service index
(https://api.nuget.org/v3/index.json): SearchQueryService,
RegistrationsBaseUrl and ReadmeUriTemplate. The index is fetched once per
client; concurrent first callers share the same request.
"""

from __future__ import annotations

import asyncio
from typing import Any

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import (
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    CACHE_TTL_SEARCH_SECONDS,
    NUGET_MAX_TAKE,
    NUGET_SERVICE_INDEX_URL,
)
from npm_gallery.exceptions import ApiError, ApiErrorType
from npm_gallery.logging import get_logger

logger = get_logger(__name__)


def _find_resource(resources: list[dict[str, Any]], type_prefix: str) -> str | None:
    for resource in resources:
        resource_type = resource.get("@type") or ""
        if resource_type == type_prefix or resource_type.startswith(f"{type_prefix}/"):
            return resource.get("@id")
    return None


class NuGetClient(BaseApiClient):
    name = "nuget"

    def __init__(self, service_index_url: str = NUGET_SERVICE_INDEX_URL, **kwargs: Any) -> None:
        super().__init__(service_index_url, **kwargs)
        self.service_index_url = service_index_url
        self._search_url: str | None = None
        self._registrations_url: str | None = None
        self._readme_template: str | None = None
        self._index_task: asyncio.Task[None] | None = None

    async def _ensure_index(self) -> None:
        if self._search_url is not None:
            return
        if self._index_task is None:
            self._index_task = asyncio.ensure_future(self._load_index())
        try:
            await asyncio.shield(self._index_task)
        except Exception:
            self._index_task = None
            raise

    async def _load_index(self) -> None:
        index = await self._get_json(self.service_index_url)
        resources = index.get("resources") or []

        search_url = _find_resource(resources, "SearchQueryService")
        if not search_url:
            raise ApiError(
                "Service index has no SearchQueryService",
                self.name,
                ApiErrorType.INVALID_RESPONSE,
            )
        registrations_url = _find_resource(resources, "RegistrationsBaseUrl")

        self._search_url = search_url.rstrip("/")
        self._registrations_url = registrations_url.rstrip("/") if registrations_url else None
        self._readme_template = _find_resource(resources, "ReadmeUriTemplate")
        logger.debug(
            "NuGet service index loaded",
            extra={"search_url": self._search_url, "registrations_url": self._registrations_url},
        )

    async def search(
        self,
        query: str,
        *,
        skip: int = 0,
        take: int = 20,
        prerelease: bool = False,
        sem_ver_level: str = "2.0.0",
        package_type: str | None = None,
    ) -> dict[str, Any]:
        """Query SearchQueryService. Returns `{"totalHits": int, "data": [...]}`."""
        await self._ensure_index()
        if self._search_url is None:
            raise ApiError(
                "Service index has no SearchQueryService",
                self.name,
                ApiErrorType.INVALID_RESPONSE,
            )

        params: dict[str, Any] = {
            "skip": skip,
            "take": min(take, NUGET_MAX_TAKE),
            "prerelease": str(prerelease).lower(),
            "semVerLevel": sem_ver_level,
        }
        if query.strip():
            params["q"] = query.strip()
        if package_type and package_type.strip():
            params["packageType"] = package_type.strip()

        return await self._get_json(
            self._search_url,
            params=params,
            cache_key=f"search:{query}:{skip}:{take}:{prerelease}:{package_type}",
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )

    async def get_package_metadata(self, package_id: str) -> dict[str, Any] | None:
        """Search item whose id equals `package_id` (case-insensitive), or None."""
        result = await self.search(package_id, take=1)
        wanted = package_id.lower()
        for item in result.get("data") or []:
            if str(item.get("id", "")).lower() == wanted:
                return item
        return None

    async def get_registration_index(self, package_id: str) -> dict[str, Any]:
        await self._ensure_index()
        if self._registrations_url is None:
            raise ApiError(
                "Service index has no RegistrationsBaseUrl",
                self.name,
                ApiErrorType.INVALID_RESPONSE,
            )
        return await self._get_json(
            f"{self._registrations_url}/{package_id.lower()}/index.json",
            cache_key=f"registration:{package_id.lower()}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )

    async def get_readme(self, package_id: str, version: str) -> str | None:
        """README text from the flat container, or None when absent."""
        await self._ensure_index()
        if not self._readme_template:
            return None
        url = self._readme_template.replace("{lower_id}", package_id.lower()).replace(
            "{lower_version}", version.lower()
        )
        try:
            text = await self._get_text(url)
        except ApiError as e:
            logger.debug(f"No README for {package_id} {version}: {e}")
            return None
        return text if text.strip() else None
