"""npms.io source adapter.

Fallback source for npm projects. Search, suggestions and scores come from
npms.io; readme, versions and dependency maps come from the npm registry
client when one is injected, since npms.io analysis documents lack them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from npm_gallery.adapters.npm_base import NpmBaseAdapter, build_search_text
from npm_gallery.adapters.npm_transformer import NpmTransformer
from npm_gallery.adapters.npms_transformer import NpmsTransformer, analysis_downloads
from npm_gallery.clients.bundlephobia import BundlephobiaClient
from npm_gallery.clients.npm_audit import NpmAuditClient
from npm_gallery.clients.npm_registry import NpmRegistryClient
from npm_gallery.clients.npms import NpmsClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.exceptions import ApiError, ApiErrorType, PackageNotFoundError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    BundleSize,
    FilterOption,
    PackageDetails,
    PackageInfo,
    PackageManager,
    SearchOptions,
    SearchResult,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.capabilities import Capability
from npm_gallery.utils import sort_packages

logger = get_logger(__name__)

# Client-side orderings; "relevance" keeps the upstream order
SORT_KEYS: dict[str, tuple[Callable[[PackageInfo], Any], bool]] = {
    "name": (lambda p: p.name.lower(), False),
    "popularity": (lambda p: p.downloads or 0, True),
    "quality": (lambda p: p.score.final if p.score else 0.0, True),
    "maintenance": (lambda p: p.score.detail.maintenance if p.score else 0.0, True),
}


class NpmsSourceAdapter(NpmBaseAdapter):
    """Adapter over npms.io, backed by the npm registry for details."""

    source_type = SourceType.NPMS_IO
    display_name = "npms.io"
    supported_sort_options = [SortOption.create(value) for value in ("relevance", *SORT_KEYS)]
    supported_filters = [
        FilterOption.create(value) for value in ("author", "maintainer", "scope", "keywords")
    ]

    def __init__(
        self,
        client: NpmsClient,
        *,
        registry: NpmRegistryClient | None = None,
        bundlephobia: BundlephobiaClient | None = None,
        osv: OsvClient | None = None,
        audit: NpmAuditClient | None = None,
        workspace_root: Path | None = None,
        default_package_manager: PackageManager = "npm",
    ) -> None:
        super().__init__(
            osv=osv,
            audit=audit,
            workspace_root=workspace_root,
            default_package_manager=default_package_manager,
        )
        self._client = client
        self._registry = registry
        self._bundlephobia = bundlephobia
        self._transformer = NpmsTransformer()
        self._registry_transformer = NpmTransformer()

    def declared_capabilities(self) -> Iterable[Capability]:
        capabilities = {
            Capability.INSTALLATION,
            Capability.SUGGESTIONS,
            Capability.DOWNLOAD_STATS,
            Capability.QUALITY_SCORE,
        }
        if self._registry is not None:
            capabilities |= {Capability.DEPENDENCIES, Capability.DOCUMENTATION}
        if self._osv is not None or self._audit is not None:
            capabilities.add(Capability.SECURITY)
        if self._bundlephobia is not None:
            capabilities.add(Capability.BUNDLE_SIZE)
        return capabilities

    async def search(self, options: SearchOptions) -> SearchResult:
        query = options.query.strip() or (options.exact_name or "").strip()
        if not query:
            return SearchResult.empty()

        raw = await self._client.search(
            build_search_text(query, options.filters), from_=options.from_, size=options.size
        )
        result = self._transformer.transform_search_result(raw, offset=options.from_)
        await self._attach_downloads(result.packages)

        if options.exact_name:
            result = await self._surface_exact(result, options.exact_name)
        sort = SORT_KEYS.get(options.sort_by)
        if sort is not None:
            key, reverse = sort
            result.packages = sort_packages(result.packages, key=key, reverse=reverse)
        return result

    async def _attach_downloads(self, packages: list[PackageInfo]) -> None:
        if not packages:
            return
        try:
            analyses = await self._client.mget([p.name for p in packages])
        except ApiError as e:
            logger.debug(f"Skipping download counts: {e}")
            return
        for package in packages:
            analysis = analyses.get(package.name)
            if isinstance(analysis, dict):
                package.downloads = analysis_downloads(analysis)

    async def get_suggestions(self, query: str, limit: int = 10) -> list[PackageInfo]:
        self.require_capability(Capability.SUGGESTIONS)
        if not query.strip():
            return []
        raw = await self._client.suggestions(query.strip(), size=limit)
        return self._transformer.transform_search_result(raw).packages

    async def get_package_info(self, name: str) -> PackageInfo:
        return self._transformer.transform_package_info(await self._get_analysis(name))

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        if self._registry is None:
            analysis = await self._get_analysis(name)
            return self._transformer.transform_package_details(analysis, version)

        try:
            raw = await self._registry.get_package(name)
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                raise PackageNotFoundError(name, self.source_type.value) from e
            raise
        details = self._registry_transformer.transform_package_details(raw, version)

        try:
            details.score = self._transformer.transform_package_info(
                await self._client.get_package(name)
            ).score
        except ApiError as e:
            logger.debug(f"No npms.io score for {name}: {e}")

        details.downloads = await self._registry.get_downloads(name)
        details.bundle_size = await self._bundle_size_or_none(name, details.version)
        if self.supports_capability(Capability.SECURITY) and details.version:
            details.security = await self.get_security_info(name, details.version)
        return details

    async def get_versions(self, name: str) -> list[VersionInfo]:
        if self._registry is None:
            return []
        try:
            raw = await self._registry.get_package(name)
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                raise PackageNotFoundError(name, self.source_type.value) from e
            raise
        return self._registry_transformer.transform_versions(raw)

    async def get_bundle_size(self, name: str, version: str | None = None) -> BundleSize | None:
        bundlephobia = self._client_for(Capability.BUNDLE_SIZE, self._bundlephobia)
        return await bundlephobia.get_size(name, version)

    async def _bundle_size_or_none(self, name: str, version: str) -> BundleSize | None:
        if not self.supports_capability(Capability.BUNDLE_SIZE):
            return None
        try:
            return await self.get_bundle_size(name, version)
        except ApiError as e:
            logger.debug(f"Bundle size unavailable for {name}@{version}: {e}")
            return None

    async def _get_analysis(self, name: str) -> dict[str, Any]:
        try:
            return await self._client.get_package(name)
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                raise PackageNotFoundError(name, self.source_type.value) from e
            raise
