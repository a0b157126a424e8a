"""NuGet source adapter (NuGet V3 API).

.NET projects add packages by editing project files or running one of
several tools, so this adapter offers COPY snippets in every common
format rather than a single install command:

    packagereference   <PackageReference Include="X" Version="V" />   (.csproj)
    dotnet-cli         dotnet add package X --version V
    cpm                <PackageVersion Include="X" Version="V" />     (Directory.Packages.props)
    cpm-project        <PackageReference Include="X" />               (.csproj under CPM)
    paket              paket add X --version V
    paket-deps         nuget X V                                      (paket.dependencies)
    cake / cake-tool   #addin / #tool nuget:?package=X&version=V
    pmc                Install-Package X -Version V
    script             #r "nuget: X, V"
    file-based         #:package X@V

A version of `*` (the default) drops the version argument where the
format allows it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from npm_gallery.adapters.nuget_transformer import NuGetTransformer
from npm_gallery.clients.deps_dev import DepsDevClient
from npm_gallery.clients.nuget import NuGetClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.exceptions import ApiError, PackageNotFoundError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    CopyOptions,
    FilterOption,
    PackageDetails,
    PackageInfo,
    ProjectType,
    SearchFilters,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability
from npm_gallery.utils import sort_packages

logger = get_logger(__name__)

ANY_VERSION = "*"


def _suffix(version: str, template: str) -> str:
    return "" if version == ANY_VERSION else template.format(version=version)


SNIPPET_BUILDERS: dict[str, Callable[[str, str], str]] = {
    "packagereference": lambda id_, v: f'    <PackageReference Include="{id_}" Version="{v}" />',
    "dotnet-cli": lambda id_, v: f"dotnet add package {id_}{_suffix(v, ' --version {version}')}",
    "cpm": lambda id_, v: f'    <PackageVersion Include="{id_}" Version="{v}" />',
    "cpm-project": lambda id_, v: f'    <PackageReference Include="{id_}" />',
    "paket": lambda id_, v: f"paket add {id_}{_suffix(v, ' --version {version}')}",
    "paket-deps": lambda id_, v: f"nuget {id_} {v}",
    "cake": lambda id_, v: f"#addin nuget:?package={id_}{_suffix(v, '&version={version}')}",
    "cake-tool": lambda id_, v: f"#tool nuget:?package={id_}{_suffix(v, '&version={version}')}",
    "pmc": lambda id_, v: f"Install-Package {id_}{_suffix(v, ' -Version {version}')}",
    "script": lambda id_, v: f'#r "nuget: {id_}{_suffix(v, ", {version}")}"',
    "file-based": lambda id_, v: f"#:package {id_}{_suffix(v, '@{version}')}",
}


def build_search_query(query: str, filters: SearchFilters | None) -> str:
    """Append NuGet `author:` and `tags:` query fields."""
    parts = [query.strip()]
    if filters is not None:
        if filters.author:
            parts.append(f"author:{filters.author}")
        if filters.keywords:
            parts.extend(f"tags:{tag}" for tag in filters.keywords)
    return " ".join(part for part in parts if part)


class NuGetSourceAdapter(SourceAdapter):
    """Adapter over nuget.org's V3 search and registration resources."""

    source_type = SourceType.NUGET
    display_name = "NuGet"
    project_type = ProjectType.DOTNET
    supported_sort_options = [
        SortOption.create("relevance"),
        SortOption.create("popularity"),
        SortOption.create("name"),
    ]
    supported_filters = [
        FilterOption.create("author", placeholder="author or owner"),
        FilterOption.create("tags"),
        FilterOption.create("packageType"),
    ]

    def __init__(
        self,
        client: NuGetClient,
        *,
        osv: OsvClient,
        deps_dev: DepsDevClient | None = None,
    ) -> None:
        super().__init__(deps_dev)
        self._client = client
        self._osv = osv
        self._transformer = NuGetTransformer()

    def declared_capabilities(self) -> Iterable[Capability]:
        return {
            Capability.COPY,
            Capability.SUGGESTIONS,
            Capability.DOWNLOAD_STATS,
            Capability.SECURITY,
            Capability.DEPENDENTS,
        }

    def get_ecosystem(self) -> str:
        return "nuget"

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    async def search(self, options: SearchOptions) -> SearchResult:
        exact_name = (options.exact_name or "").strip()
        query = exact_name or options.query.strip()
        if not query:
            return SearchResult.empty()

        raw = await self._client.search(
            build_search_query(query, options.filters),
            skip=options.from_,
            take=options.size,
        )
        result = self._transformer.transform_search_result(raw, offset=options.from_)

        if exact_name:
            result = await self._surface_exact(result, exact_name)
        if options.sort_by == "name":
            result.packages = sort_packages(result.packages, key=lambda p: p.name.lower())
        elif options.sort_by == "popularity":
            result.packages = sort_packages(
                result.packages, key=lambda p: p.downloads or 0, reverse=True
            )
        return result

    async def get_suggestions(self, query: str, limit: int = 10) -> list[PackageInfo]:
        self.require_capability(Capability.SUGGESTIONS)
        raw = await self._client.search(query.strip(), take=limit)
        return self._transformer.transform_search_result(raw).packages

    async def get_package_info(self, name: str) -> PackageInfo:
        return self._transformer.transform_package_info(await self._get_metadata(name))

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        item = await self._get_metadata(name)
        registration: dict[str, Any] | None
        try:
            registration = await self._client.get_registration_index(name)
        except ApiError as e:
            logger.debug(f"No registration index for {name}: {e}")
            registration = None

        details = self._transformer.transform_package_details(
            {"item": item, "registration": registration}, version
        )
        readme = await self._client.get_readme(item.get("id", name), details.version)
        if readme is None:
            readme = (item.get("description") or item.get("summary") or "").strip() or None
        details.readme = readme
        return details

    async def get_versions(self, name: str) -> list[VersionInfo]:
        item = await self._get_metadata(name)
        return self._transformer.transform_versions(item.get("versions") or [])

    async def _get_metadata(self, name: str) -> dict[str, Any]:
        item = await self._client.get_package_metadata(name)
        if item is None:
            raise PackageNotFoundError(name, self.source_type.value)
        return item

    # -------------------------------------------------------------------------
    # Optional operations
    # -------------------------------------------------------------------------

    def get_copy_snippet(self, name: str, options: CopyOptions) -> str:
        """Snippet in `options.format`; unknown formats use packagereference."""
        self.require_capability(Capability.COPY)
        builder = SNIPPET_BUILDERS.get(options.format or "", SNIPPET_BUILDERS["packagereference"])
        return builder(name, options.version or ANY_VERSION)

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        self.require_capability(Capability.SECURITY)
        return await self._osv.query(name, version, self.get_ecosystem())

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None]:
        self.require_capability(Capability.SECURITY)
        return dict(await self._osv.query_bulk(packages, self.get_ecosystem()))
