"""Client for the Libraries.io API (https://libraries.io/api).

Libraries.io indexes many package platforms behind one API, so every call
takes a platform name (`NPM`, `Maven`, `NuGet`, ...). An API key is
optional upstream but strongly rate limited without one; it is sent as the
`api_key` query parameter and never included in cache keys.

The API answers the same endpoint in more than one shape. `search` and
`get_project` normalize them:

    search:       [project, ...] or {"total", "page", "per_page", "projects"}
                  -> {"total": int | None, "projects": [project, ...]}
    get_project:  [project], project-with-versions, or {"project", "versions"}
                  -> {"project": project, "versions": [version, ...]}

Example:
    client = LibrariesIoClient(api_key=os.environ["LIBRARIES_IO_API_KEY"])
    raw = await client.search("guava", platform="Maven", per_page=5)
    print([project["name"] for project in raw["projects"]])
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import (
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    CACHE_TTL_SEARCH_SECONDS,
    LIBRARIES_IO_API_URL,
    LIBRARIES_IO_DEFAULT_PER_PAGE,
)
from npm_gallery.exceptions import ApiError, ApiErrorType
from npm_gallery.models import ProjectType

# Project type -> Libraries.io platform name
PLATFORMS: dict[ProjectType, str] = {
    ProjectType.NPM: "NPM",
    ProjectType.MAVEN: "Maven",
    ProjectType.GO: "Go",
    ProjectType.DOTNET: "NuGet",
}


def platform_for(project_type: ProjectType) -> str:
    """Libraries.io platform for `project_type`; NPM when it has none."""
    return PLATFORMS.get(project_type, "NPM")


class LibrariesIoClient(BaseApiClient):
    name = "libraries-io"

    def __init__(
        self,
        base_url: str = LIBRARIES_IO_API_URL,
        *,
        api_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self._api_key = api_key

    def _params(self, **params: Any) -> dict[str, Any]:
        """Drop unset values and attach the API key when configured."""
        result = {key: value for key, value in params.items() if value not in (None, "")}
        if self._api_key:
            result["api_key"] = self._api_key
        return result

    async def search(
        self,
        query: str,
        platform: str = "NPM",
        *,
        page: int = 1,
        per_page: int = LIBRARIES_IO_DEFAULT_PER_PAGE,
        sort: str | None = None,
        languages: str | None = None,
        licenses: str | None = None,
        keywords: str | None = None,
        platforms: str | None = None,
    ) -> dict[str, Any]:
        """Search projects. `platforms` replaces `platform` when given.

        Returns:
            `{"total": int | None, "projects": [...]}`. `total` is None when
            upstream answered with a bare list.
        """
        params = self._params(
            q=query,
            platforms=platforms or platform,
            page=page,
            per_page=per_page,
            sort=sort,
            languages=languages,
            licenses=licenses,
            keywords=keywords,
        )
        data = await self._get_json(
            "/search",
            params=params,
            cache_key=(
                f"search:{query}:{params['platforms']}:{page}:{per_page}:{sort}:"
                f"{languages}:{licenses}:{keywords}"
            ),
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )
        if isinstance(data, list):
            return {"total": None, "projects": data}
        if isinstance(data, dict) and isinstance(data.get("projects"), list):
            return {"total": data.get("total"), "projects": data["projects"]}
        raise ApiError(
            "Search response has no project list", self.name, ApiErrorType.INVALID_RESPONSE
        )

    async def get_project(self, platform: str, name: str) -> dict[str, Any]:
        """Project document plus its versions, as `{"project", "versions"}`."""
        data = await self._get_json(
            f"/{platform}/{_quote(name)}",
            params=self._params(),
            cache_key=f"project:{platform}:{name}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )
        if isinstance(data, list):
            if not data:
                raise ApiError(
                    f"Not found: {platform}/{name}", self.name, ApiErrorType.NOT_FOUND
                )
            data = data[0]
        if not isinstance(data, dict):
            raise ApiError(
                f"Invalid project response for {name}", self.name, ApiErrorType.INVALID_RESPONSE
            )

        if isinstance(data.get("project"), dict):
            return {"project": data["project"], "versions": data.get("versions") or []}
        if "name" in data:
            return {"project": data, "versions": data.get("versions") or []}
        raise ApiError(
            f"Invalid project response for {name}", self.name, ApiErrorType.INVALID_RESPONSE
        )

    async def get_dependencies(
        self, platform: str, name: str, version: str | None = None
    ) -> dict[str, Any]:
        """Dependencies of `version`, or of the latest release when omitted."""
        return await self._get_json(
            f"/{platform}/{_quote(name)}/dependencies",
            params=self._params(version=version),
            cache_key=f"dependencies:{platform}:{name}:{version}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )


def _quote(name: str) -> str:
    # Coordinates such as `group:artifact` and scoped npm names are one path segment
    return quote(name, safe="")
