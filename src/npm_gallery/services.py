"""Domain services over the source selector.

Fetch operations run through `SourceSelector.execute_with_fallback` so a
failing upstream hands off to the next configured source. Optional
features (bundle size, security, dependents, snippets) use the single
selected adapter and return None when it lacks the capability, so the UI
can show "unavailable for this source" instead of an error.

Example:
    packages = PackageService(selector)
    details = await packages.get_package_details("react")
    size = await packages.get_bundle_size("react")  # None on NuGet or Maven
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import TypeVar

from npm_gallery.constants import DEFAULT_SUGGESTION_LIMIT, MIN_SUGGESTION_QUERY_LENGTH
from npm_gallery.exceptions import CapabilityNotSupportedError, GalleryError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    BundleSize,
    CopyOptions,
    DependentsInfo,
    GalleryModel,
    InstallOptions,
    PackageDetails,
    PackageInfo,
    RequirementsInfo,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability, CapabilitySupport
from npm_gallery.sources.selector import SourceSelector  # noqa: TC001 - used at runtime

logger = get_logger(__name__)

T = TypeVar("T")

# Marker file -> build tool, checked in this order
BUILD_TOOL_FILES: list[tuple[str, str]] = [
    ("build.gradle", "gradle"),
    ("build.gradle.kts", "gradle"),
    ("build.sbt", "sbt"),
    ("build.sc", "mill"),
    ("ivy.xml", "ivy"),
    ("project.clj", "leiningen"),
    ("buildfile", "buildr"),
    ("grapeConfig.xml", "grape"),
    ("pom.xml", "maven"),
]

BUILD_TOOL_FORMATS: dict[str, str] = {
    "gradle": "gradle",
    "sbt": "sbt",
    "grape": "grape",
    "maven": "xml",
}


class OperationResult(GalleryModel):
    """Outcome of generating an install/update/remove command or snippet."""

    success: bool
    message: str
    command: str | None = None


async def _optional(
    adapter: SourceAdapter,
    capability: Capability,
    call: Callable[[SourceAdapter], Awaitable[T]],
) -> T | None:
    if not adapter.supports_capability(capability):
        return None
    try:
        return await call(adapter)
    except CapabilityNotSupportedError as e:
        logger.debug(f"{e}")
        return None


# =============================================================================
# PACKAGE SERVICE
# =============================================================================


class PackageService:
    """Package metadata lookups for the current source."""

    def __init__(self, selector: SourceSelector) -> None:
        self._selector = selector

    # -------------------------------------------------------------------------
    # Fetches with fallback
    # -------------------------------------------------------------------------

    async def get_package_info(self, name: str) -> PackageInfo:
        return await self._selector.execute_with_fallback(lambda a: a.get_package_info(name))

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        return await self._selector.execute_with_fallback(
            lambda a: a.get_package_details(name, version)
        )

    async def get_versions(self, name: str) -> list[VersionInfo]:
        return await self._selector.execute_with_fallback(lambda a: a.get_versions(name))

    async def get_latest_version(self, name: str) -> str | None:
        """Latest version string, or None if no source could resolve it."""
        try:
            info = await self.get_package_info(name)
        except GalleryError as e:
            logger.debug(f"Latest version of {name} unavailable: {e}")
            return None
        return info.version or None

    async def get_package_dependencies(
        self, name: str, version: str | None = None
    ) -> dict[str, str]:
        """All declared dependency ranges merged into one map.

        Later maps win on name clashes: dependencies, dev, peer, optional.
        """
        details = await self.get_package_details(name, version)
        merged: dict[str, str] = {}
        for deps in (
            details.dependencies,
            details.dev_dependencies,
            details.peer_dependencies,
            details.optional_dependencies,
        ):
            merged.update(deps or {})
        return merged

    # -------------------------------------------------------------------------
    # Optional features on the selected source
    # -------------------------------------------------------------------------

    async def get_bundle_size(self, name: str, version: str | None = None) -> BundleSize | None:
        return await _optional(
            self._selector.select_source(),
            Capability.BUNDLE_SIZE,
            lambda a: a.get_bundle_size(name, version),
        )

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        return await _optional(
            self._selector.select_source(),
            Capability.SECURITY,
            lambda a: a.get_security_info(name, version),
        )

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None] | None:
        return await _optional(
            self._selector.select_source(),
            Capability.SECURITY,
            lambda a: a.get_security_info_bulk(packages),
        )

    async def get_dependents(self, name: str, version: str) -> DependentsInfo | None:
        return await _optional(
            self._selector.select_source(),
            Capability.DEPENDENTS,
            lambda a: a.get_dependents(name, version),
        )

    async def get_requirements(self, name: str, version: str) -> RequirementsInfo | None:
        return await _optional(
            self._selector.select_source(),
            Capability.REQUIREMENTS,
            lambda a: a.get_requirements(name, version),
        )

    def get_copy_snippet(self, name: str, options: CopyOptions) -> str | None:
        adapter = self._selector.select_source()
        if not adapter.supports_capability(Capability.COPY):
            return None
        return adapter.get_copy_snippet(name, options)

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    def supports_capability(self, capability: Capability) -> bool:
        return self._selector.select_source().supports_capability(capability)

    def get_capability_support(self, capability: Capability) -> CapabilitySupport:
        return self._selector.select_source().get_capability_support(capability)

    def get_supported_capabilities(self) -> list[Capability]:
        return self._selector.select_source().get_supported_capabilities()


# =============================================================================
# SEARCH SERVICE
# =============================================================================


class SearchService:
    def __init__(self, selector: SourceSelector) -> None:
        self._selector = selector

    async def search(self, options: SearchOptions) -> SearchResult:
        """Search with fallback. Blank queries return an empty result."""
        if not (options.query.strip() or (options.exact_name or "").strip()):
            return SearchResult.empty()
        result = await self._selector.execute_with_fallback(lambda a: a.search(options))
        logger.debug(
            f"Search '{options.query}' returned {len(result.packages)} packages",
            extra={"total": result.total, "sort_by": options.sort_by},
        )
        return result

    async def get_suggestions(
        self, query: str, limit: int = DEFAULT_SUGGESTION_LIMIT
    ) -> list[PackageInfo]:
        """Autocomplete entries; empty for short queries or unsupported sources."""
        if len(query.strip()) < MIN_SUGGESTION_QUERY_LENGTH:
            return []
        suggestions = await _optional(
            self._selector.select_source(),
            Capability.SUGGESTIONS,
            lambda a: a.get_suggestions(query, limit),
        )
        return suggestions or []


# =============================================================================
# INSTALL SERVICE
# =============================================================================


def detect_build_tool(root: Path) -> str | None:
    """Name of the JVM build tool whose marker file exists in `root`."""
    for filename, tool in BUILD_TOOL_FILES:
        if (root / filename).is_file():
            return tool
    return None


def copy_format_for_build_tool(build_tool: str | None) -> str:
    """Maven snippet format matching `build_tool`; `other` when unmapped."""
    return BUILD_TOOL_FORMATS.get(build_tool or "", "other")


class InstallService:
    """Generates install commands and manifest snippets. Never executes them.

    Args:
        selector: Source selector.
        workspace_roots: Searched for a build tool when a Maven snippet
            request names neither a format nor a build tool.
    """

    def __init__(self, selector: SourceSelector, workspace_roots: Sequence[Path] = ()) -> None:
        self._selector = selector
        self._workspace_roots = [Path(root) for root in workspace_roots]

    def _unsupported(self, adapter: SourceAdapter, action: str) -> OperationResult:
        return OperationResult(
            success=False,
            message=f"{action} is not supported by this source ({adapter.display_name})",
        )

    def get_install_command(
        self, name: str, options: InstallOptions | None = None
    ) -> OperationResult:
        adapter = self._selector.select_source()
        if not adapter.supports_capability(Capability.INSTALLATION):
            return self._unsupported(adapter, "Installation")
        command = adapter.get_install_command(name, options or InstallOptions())
        return OperationResult(success=True, message=f"Install {name}", command=command)

    def get_update_command(self, name: str, version: str | None = None) -> OperationResult:
        adapter = self._selector.select_source()
        if not adapter.supports_capability(Capability.INSTALLATION):
            return self._unsupported(adapter, "Update")
        command = adapter.get_update_command(name, version)
        return OperationResult(success=True, message=f"Update {name}", command=command)

    def get_remove_command(self, name: str) -> OperationResult:
        adapter = self._selector.select_source()
        if not adapter.supports_capability(Capability.INSTALLATION):
            return self._unsupported(adapter, "Removal")
        command = adapter.get_remove_command(name)
        return OperationResult(success=True, message=f"Remove {name}", command=command)

    def get_copy_snippet(self, name: str, options: CopyOptions | None = None) -> OperationResult:
        adapter = self._selector.select_source()
        if not adapter.supports_capability(Capability.COPY):
            return self._unsupported(adapter, "Copying a snippet")

        options = options or CopyOptions()
        if options.format is None and adapter.source_type is SourceType.SONATYPE:
            build_tool = options.build_tool or self.detect_build_tool()
            if build_tool is not None:
                options = options.model_copy(
                    update={"format": copy_format_for_build_tool(build_tool)}
                )
        snippet = adapter.get_copy_snippet(name, options)
        return OperationResult(success=True, message=f"Snippet for {name}", command=snippet)

    def detect_build_tool(self) -> str | None:
        """First build tool found across the workspace roots."""
        for root in self._workspace_roots:
            tool = detect_build_tool(root)
            if tool is not None:
                logger.debug(f"Detected build tool {tool} in {root}")
                return tool
        return None
