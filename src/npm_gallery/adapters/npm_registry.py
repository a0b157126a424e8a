"""npm registry source adapter.

Primary source for npm projects. Search uses `/-/v1/search`; details come
from the packument, enriched with weekly downloads, Bundlephobia sizes and
security advisories when those clients are configured.

With a Libraries.io client injected, search and details fall back to
Libraries.io when the registry itself fails. Unknown packages do not fall
back.

Example:
    adapter = NpmRegistrySourceAdapter(NpmRegistryClient(), osv=OsvClient())
    result = await adapter.search(SearchOptions(query="react", exact_name="react"))
    print(result.packages[0].exact_match)  # True
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from npm_gallery.adapters.libraries_io_transformer import LibrariesIoTransformer
from npm_gallery.adapters.npm_base import NpmBaseAdapter, build_search_text
from npm_gallery.adapters.npm_transformer import NpmTransformer
from npm_gallery.clients.bundlephobia import BundlephobiaClient
from npm_gallery.clients.deps_dev import DepsDevClient
from npm_gallery.clients.libraries_io import LibrariesIoClient, platform_for
from npm_gallery.clients.npm_audit import NpmAuditClient
from npm_gallery.clients.npm_registry import NpmRegistryClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.exceptions import ApiError, ApiErrorType, PackageNotFoundError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    BundleSize,
    FilterOption,
    PackageDetails,
    PackageInfo,
    PackageManager,
    ProjectType,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.capabilities import Capability
from npm_gallery.utils import sort_packages

logger = get_logger(__name__)


class NpmRegistrySourceAdapter(NpmBaseAdapter):
    """Adapter over the public npm registry."""

    source_type = SourceType.NPM_REGISTRY
    display_name = "npm Registry"
    supported_sort_options = [
        SortOption.create("relevance"),
        SortOption.create("popularity"),
        SortOption.create("quality"),
        SortOption.create("maintenance"),
        SortOption.create("name"),
    ]
    supported_filters = [
        FilterOption.create("author"),
        FilterOption.create("maintainer"),
        FilterOption.create("scope"),
        FilterOption.create("keywords"),
    ]

    def __init__(
        self,
        client: NpmRegistryClient,
        *,
        bundlephobia: BundlephobiaClient | None = None,
        osv: OsvClient | None = None,
        audit: NpmAuditClient | None = None,
        deps_dev: DepsDevClient | None = None,
        workspace_root: Path | None = None,
        default_package_manager: PackageManager = "npm",
        libraries_io: LibrariesIoClient | None = None,
    ) -> None:
        super().__init__(
            osv=osv,
            audit=audit,
            deps_dev=deps_dev,
            workspace_root=workspace_root,
            default_package_manager=default_package_manager,
        )
        self._client = client
        self._bundlephobia = bundlephobia
        self._libraries_io = libraries_io
        self._transformer = NpmTransformer()
        self._libraries_io_transformer = LibrariesIoTransformer()

    def declared_capabilities(self) -> Iterable[Capability]:
        capabilities = {
            Capability.INSTALLATION,
            Capability.SUGGESTIONS,
            Capability.DEPENDENCIES,
            Capability.DOCUMENTATION,
            Capability.DOWNLOAD_STATS,
            Capability.QUALITY_SCORE,
        }
        if self._osv is not None or self._audit is not None:
            capabilities.add(Capability.SECURITY)
        if self._bundlephobia is not None:
            capabilities.add(Capability.BUNDLE_SIZE)
        if self._deps_dev is not None:
            capabilities |= {Capability.DEPENDENTS, Capability.REQUIREMENTS}
        return capabilities

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    async def search(self, options: SearchOptions) -> SearchResult:
        query = options.query.strip() or (options.exact_name or "").strip()
        if not query:
            return SearchResult.empty()

        # The registry has no name ordering; fetch by relevance and sort here
        api_sort = "relevance" if options.sort_by == "name" else options.sort_by
        try:
            raw = await self._client.search(
                build_search_text(query, options.filters),
                from_=options.from_,
                size=options.size,
                sort_by=api_sort,
            )
        except ApiError as e:
            if self._libraries_io is None:
                raise
            logger.warning(f"npm registry search failed, using Libraries.io: {e}")
            result = await self._search_libraries_io(self._libraries_io, query, options)
        else:
            result = self._transformer.transform_search_result(raw, offset=options.from_)

        if options.exact_name:
            result = await self._surface_exact(result, options.exact_name)
        if options.sort_by == "name":
            result.packages = sort_packages(result.packages, key=lambda p: p.name.lower())
        return result

    async def get_package_info(self, name: str) -> PackageInfo:
        raw = await self._get_packument(name)
        info = self._transformer.transform_package_info(raw)
        info.downloads = await self._client.get_downloads(name)
        return info

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        try:
            raw = await self._get_packument(name)
        except ApiError as e:
            if self._libraries_io is None:
                raise
            logger.warning(f"npm registry lookup of {name} failed, using Libraries.io: {e}")
            return await self._details_from_libraries_io(self._libraries_io, name, version)

        details = self._transformer.transform_package_details(raw, version)
        details.downloads, details.bundle_size, details.security = await asyncio.gather(
            self._client.get_downloads(name),
            self._bundle_size_or_none(name, details.version),
            self._security_or_none(name, details.version),
        )
        return details

    async def get_versions(self, name: str) -> list[VersionInfo]:
        raw = await self._get_packument(name)
        return self._transformer.transform_versions(raw)

    async def get_bundle_size(self, name: str, version: str | None = None) -> BundleSize | None:
        bundlephobia = self._client_for(Capability.BUNDLE_SIZE, self._bundlephobia)
        return await bundlephobia.get_size(name, version)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get_packument(self, name: str) -> dict[str, Any]:
        try:
            return await self._client.get_package(name)
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                raise PackageNotFoundError(name, self.source_type.value) from e
            raise

    async def _search_libraries_io(
        self, client: LibrariesIoClient, query: str, options: SearchOptions
    ) -> SearchResult:
        raw = await client.search(
            query,
            platform_for(ProjectType.NPM),
            page=options.from_ // max(options.size, 1) + 1,
            per_page=options.size,
        )
        return self._libraries_io_transformer.transform_search_result(raw, offset=options.from_)

    async def _details_from_libraries_io(
        self, client: LibrariesIoClient, name: str, version: str | None
    ) -> PackageDetails:
        platform = platform_for(ProjectType.NPM)
        raw = await client.get_project(platform, name)
        try:
            dependencies = await client.get_dependencies(platform, name, version)
        except ApiError as e:
            logger.debug(f"No Libraries.io dependencies for {name}: {e}")
            dependencies = None
        details = self._libraries_io_transformer.transform_package_details(
            {**raw, "dependencies": dependencies}, version
        )
        details.security = await self._security_or_none(name, details.version)
        return details

    async def _bundle_size_or_none(self, name: str, version: str) -> BundleSize | None:
        if not self.supports_capability(Capability.BUNDLE_SIZE):
            return None
        try:
            return await self.get_bundle_size(name, version)
        except ApiError as e:
            logger.debug(f"Bundle size unavailable for {name}@{version}: {e}")
            return None

    async def _security_or_none(self, name: str, version: str) -> SecurityInfo | None:
        if not self.supports_capability(Capability.SECURITY) or not version:
            return None
        return await self.get_security_info(name, version)
