"""Libraries.io source adapter.

One adapter for every platform Libraries.io indexes. The platform follows
the current project type when a provider is given (the container passes
the selector's), otherwise this adapter's own project type, Maven.

Search accepts free text plus `languages:`, `licenses:`, `keywords:` and
`platforms:` qualifiers, which become API parameters:

    guava licenses:Apache-2.0     -> q=guava&licenses=Apache-2.0
    keywords:json platforms:NPM   -> q=&keywords=json&platforms=NPM

Copy snippets assume Maven `groupId:artifactId` names and reuse the Maven
Central builders.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any

from npm_gallery.adapters.libraries_io_transformer import LibrariesIoTransformer
from npm_gallery.adapters.sonatype import SNIPPET_BUILDERS, maven_snippet, parse_coordinate
from npm_gallery.clients.libraries_io import LibrariesIoClient, platform_for
from npm_gallery.clients.osv import OsvClient
from npm_gallery.exceptions import (
    ApiError,
    ApiErrorType,
    InvalidCoordinateError,
    PackageNotFoundError,
)
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    CopyOptions,
    FilterOption,
    PackageDetails,
    PackageInfo,
    ProjectType,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability

logger = get_logger(__name__)

QUALIFIER_PATTERN = re.compile(r"\b(languages|licenses|keywords|platforms):(\S+)")

# Libraries.io platform -> ecosystem name used by OSV and deps.dev
ECOSYSTEMS: dict[str, str] = {
    "NPM": "npm",
    "Maven": "maven",
    "NuGet": "nuget",
    "Go": "go",
}


def parse_query(query: str) -> tuple[str, dict[str, str]]:
    """Split qualifiers out of `query`. The last occurrence of a qualifier wins."""
    qualifiers = dict(QUALIFIER_PATTERN.findall(query))
    base = re.sub(r"\s+", " ", QUALIFIER_PATTERN.sub("", query)).strip()
    return base, qualifiers


class LibrariesIoSourceAdapter(SourceAdapter):
    """Adapter over the Libraries.io cross-platform index.

    Args:
        client: Libraries.io API client.
        osv: Vulnerability client; SECURITY is declared only when present.
        project_type_provider: Returns the project type whose platform is queried.
    """

    source_type = SourceType.LIBRARIES_IO
    display_name = "Libraries.io"
    project_type = ProjectType.MAVEN
    supported_sort_options = [
        SortOption.create("relevance"),
        SortOption.create("latest_release_published_at"),
        SortOption.create("rank"),
        SortOption.create("stars"),
    ]
    supported_filters = [
        FilterOption.create("languages"),
        FilterOption.create("licenses"),
        FilterOption.create("keywords", placeholder="keywords (comma-separated)"),
        FilterOption.create("platforms"),
    ]

    def __init__(
        self,
        client: LibrariesIoClient,
        *,
        osv: OsvClient | None = None,
        project_type_provider: Callable[[], ProjectType] | None = None,
    ) -> None:
        super().__init__()
        self._client = client
        self._osv = osv
        self._project_type_provider = project_type_provider
        self._transformer = LibrariesIoTransformer()

    def declared_capabilities(self) -> Iterable[Capability]:
        capabilities = {Capability.COPY, Capability.SUGGESTIONS, Capability.DEPENDENCIES}
        if self._osv is not None:
            capabilities.add(Capability.SECURITY)
        return capabilities

    def effective_project_type(self) -> ProjectType:
        if self._project_type_provider is not None:
            return self._project_type_provider()
        return self.project_type

    def platform(self) -> str:
        return platform_for(self.effective_project_type())

    def get_ecosystem(self) -> str:
        return ECOSYSTEMS.get(self.platform(), "maven")

    async def _get_project(self, name: str) -> dict[str, Any]:
        try:
            return await self._client.get_project(self.platform(), name)
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                raise PackageNotFoundError(name, self.source_type.value) from e
            raise

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    async def search(self, options: SearchOptions) -> SearchResult:
        exact_name = (options.exact_name or "").strip()
        base, qualifiers = parse_query(options.query.strip() or exact_name)
        if not base and not qualifiers:
            return SearchResult.empty()

        sort = options.sort_by if options.sort_by != "relevance" else None
        platform = self.platform()
        logger.debug(
            f"Libraries.io search: {base!r}",
            extra={"platform": qualifiers.get("platforms", platform), "sort": sort},
        )
        raw = await self._client.search(
            base,
            platform,
            page=options.from_ // max(options.size, 1) + 1,
            per_page=options.size,
            sort=sort,
            languages=qualifiers.get("languages"),
            licenses=qualifiers.get("licenses"),
            keywords=qualifiers.get("keywords"),
            platforms=qualifiers.get("platforms"),
        )
        result = self._transformer.transform_search_result(raw, offset=options.from_)

        if exact_name:
            result = await self._surface_exact(result, exact_name)
        return result

    async def get_package_info(self, name: str) -> PackageInfo:
        raw = await self._get_project(name)
        return self._transformer.transform_package_info(raw)

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        raw = await self._get_project(name)
        try:
            dependencies = await self._client.get_dependencies(self.platform(), name, version)
        except ApiError as e:
            logger.debug(f"No Libraries.io dependencies for {name}: {e}")
            dependencies = None

        details = self._transformer.transform_package_details(
            {**raw, "dependencies": dependencies}, version
        )
        if self.supports_capability(Capability.SECURITY) and details.version:
            details.security = await self.get_security_info(name, details.version)
        return details

    async def get_versions(self, name: str) -> list[VersionInfo]:
        raw = await self._get_project(name)
        return self._transformer.transform_versions(raw)

    # -------------------------------------------------------------------------
    # Optional operations
    # -------------------------------------------------------------------------

    def get_copy_snippet(self, name: str, options: CopyOptions) -> str:
        """Maven-family dependency declaration. Unknown formats produce Maven XML."""
        self.require_capability(Capability.COPY)
        parsed = parse_coordinate(name)
        if parsed is None:
            raise InvalidCoordinateError(
                f"Invalid Maven coordinate: {name}. Expected format: groupId:artifactId",
                self.source_type.value,
            )
        group_id, artifact_id, _ = parsed
        builder = SNIPPET_BUILDERS.get(options.format or "xml", maven_snippet)
        version = options.version or "LATEST"
        return builder(group_id, artifact_id, version, options.scope or "compile")

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        osv = self._client_for(Capability.SECURITY, self._osv)
        return await osv.query(name, version, self.get_ecosystem())

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None]:
        osv = self._client_for(Capability.SECURITY, self._osv)
        return dict(await osv.query_bulk(packages, self.get_ecosystem()))
