"""Source adapter and transformer interfaces.

This module defines the two abstract seams of the source layer:

- SourceAdapter: one registry backend (npm registry, npms.io, Sonatype, NuGet, Libraries.io).
  Declares metadata and a static capability set, implements the four core
  operations, and inherits default bodies for every optional operation.
- SourceTransformer: pure mapping from one upstream API's raw JSON into the
  unified models in `npm_gallery.models`.

Optional operations follow one rule: check the declared capability first.
An undeclared capability raises CapabilityNotSupportedError before any
I/O happens. A declared capability whose method was not overridden is a
programming error and raises NotImplementedError.

Example Adapter:
    class NuGetSourceAdapter(SourceAdapter):
        source_type = SourceType.NUGET
        display_name = "NuGet"
        project_type = ProjectType.DOTNET
        supported_sort_options = [SortOption.create("relevance")]
        supported_filters = [FilterOption.create("tags")]

        def declared_capabilities(self):
            return {Capability.COPY, Capability.SUGGESTIONS}

        async def search(self, options):
            raw = await self._client.search(options.query, skip=options.from_)
            return self._transformer.transform_search_result(raw, offset=options.from_)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from npm_gallery.exceptions import CapabilityNotSupportedError, GalleryError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    BundleSize,
    CopyOptions,
    DependentsInfo,
    FilterOption,
    InstallOptions,
    PackageDetails,
    PackageInfo,
    ProjectType,
    RequirementsInfo,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.capabilities import CORE_CAPABILITIES, Capability, CapabilitySupport
from npm_gallery.utils import surface_exact_match

if TYPE_CHECKING:
    from npm_gallery.clients.deps_dev import DepsDevClient

logger = get_logger(__name__)

C = TypeVar("C")


# =============================================================================
# TRANSFORMER INTERFACE
# =============================================================================


class SourceTransformer(ABC):
    """Pure mapping from an upstream response shape to the unified models.

    Implementations perform no I/O and never raise for missing optional
    fields; absent data degrades to None or an empty collection. The shape
    of `raw` is specific to one upstream API.
    """

    @abstractmethod
    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        """Map a raw search response. `offset` is the requested `from`."""
        ...

    @abstractmethod
    def transform_package_info(self, raw: Any) -> PackageInfo: ...

    @abstractmethod
    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        """Map a raw package document, optionally pinned to `version`."""
        ...

    @abstractmethod
    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        """Map raw version data, newest first where publish dates are known."""
        ...


# =============================================================================
# ADAPTER INTERFACE
# =============================================================================


class SourceAdapter(ABC):
    """Abstract base class for all source adapters.

    Class Attributes:
        source_type: Registry identifier used by the registry and config.
        display_name: Human-readable source name.
        project_type: Ecosystem this source serves.
        supported_sort_options: Sort options the search UI may offer.
        supported_filters: Filter fields the search UI may offer.

    Implementation Requirements:
        - All network I/O is async
        - `declared_capabilities` is static for the adapter's lifetime
        - Optional operations are overridden only when their capability is declared
    """

    source_type: ClassVar[SourceType]
    display_name: ClassVar[str]
    project_type: ClassVar[ProjectType]
    supported_sort_options: ClassVar[list[SortOption]] = []
    supported_filters: ClassVar[list[FilterOption]] = []

    def __init__(self, deps_dev: DepsDevClient | None = None) -> None:
        """Initialize shared adapter state.

        Args:
            deps_dev: Optional dependency-graph client backing the default
                `get_dependents` / `get_requirements` implementations.
        """
        self._deps_dev = deps_dev
        self._capabilities: frozenset[Capability] | None = None

    # -------------------------------------------------------------------------
    # Capabilities
    # -------------------------------------------------------------------------

    @abstractmethod
    def declared_capabilities(self) -> Iterable[Capability]:
        """Return the capabilities this adapter supports.

        Called once; the result is frozen for the adapter's lifetime.
        """
        ...

    @property
    def capabilities(self) -> frozenset[Capability]:
        if self._capabilities is None:
            self._capabilities = frozenset(self.declared_capabilities()) | CORE_CAPABILITIES
        return self._capabilities

    def get_supported_capabilities(self) -> list[Capability]:
        """Declared capabilities in enumeration order."""
        return [cap for cap in Capability if cap in self.capabilities]

    def supports_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def get_capability_support(self, capability: Capability) -> CapabilitySupport:
        """Describe support for `capability`. Never raises."""
        if self.supports_capability(capability):
            return CapabilitySupport(capability=capability, supported=True)
        return CapabilitySupport(
            capability=capability,
            supported=False,
            reason=f"Source '{self.source_type.value}' does not support '{capability.value}'",
        )

    def require_capability(self, capability: Capability) -> None:
        """Raise CapabilityNotSupportedError unless `capability` is declared."""
        if not self.supports_capability(capability):
            raise CapabilityNotSupportedError(capability, self.source_type.value)

    def _not_implemented(self, capability: Capability) -> NotImplementedError:
        return NotImplementedError(
            f"{type(self).__name__} declares '{capability.value}' but does not implement it"
        )

    def _client_for(self, capability: Capability, client: C | None) -> C:
        """Return the client backing a declared `capability`.

        Raises:
            CapabilityNotSupportedError: The capability is not declared, or
                its client is not configured.
        """
        self.require_capability(capability)
        if client is None:
            raise CapabilityNotSupportedError(
                capability, self.source_type.value, "client not configured"
            )
        return client

    def get_ecosystem(self) -> str | None:
        """Ecosystem name used by the vulnerability and dependency-graph services."""
        return None

    async def _surface_exact(self, result: SearchResult, exact_name: str) -> SearchResult:
        """Flag and front the exact hit, fetching it via `get_package_info` if absent."""
        wanted = exact_name.lower()
        if any(p.name.lower() == wanted for p in result.packages):
            return surface_exact_match(result, exact_name)
        try:
            fallback = await self.get_package_info(exact_name)
        except GalleryError as e:
            logger.debug(f"Exact match {exact_name} not fetched from {self.source_type.value}: {e}")
            return result
        return surface_exact_match(result, exact_name, fallback)

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def search(self, options: SearchOptions) -> SearchResult:
        """Search packages.

        A blank query yields an empty result without contacting upstream.
        With `options.exact_name`, a case-insensitive exact hit is moved to
        the front and flagged `exact_match`, fetched separately if needed.
        """
        ...

    @abstractmethod
    async def get_package_info(self, name: str) -> PackageInfo:
        """Fetch summary info. Raises PackageNotFoundError for unknown names."""
        ...

    @abstractmethod
    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        ...

    @abstractmethod
    async def get_versions(self, name: str) -> list[VersionInfo]:
        """Fetch versions, newest first where publish dates are known."""
        ...

    # -------------------------------------------------------------------------
    # Optional operations
    # -------------------------------------------------------------------------

    def get_install_command(self, name: str, options: InstallOptions) -> str:
        self.require_capability(Capability.INSTALLATION)
        raise self._not_implemented(Capability.INSTALLATION)

    def get_update_command(self, name: str, version: str | None = None) -> str:
        self.require_capability(Capability.INSTALLATION)
        raise self._not_implemented(Capability.INSTALLATION)

    def get_remove_command(self, name: str) -> str:
        self.require_capability(Capability.INSTALLATION)
        raise self._not_implemented(Capability.INSTALLATION)

    def get_copy_snippet(self, name: str, options: CopyOptions) -> str:
        self.require_capability(Capability.COPY)
        raise self._not_implemented(Capability.COPY)

    async def get_suggestions(self, query: str, limit: int = 10) -> list[PackageInfo]:
        """Autocomplete. Defaults to a small search page."""
        self.require_capability(Capability.SUGGESTIONS)
        result = await self.search(SearchOptions(query=query, size=limit))
        return result.packages

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        self.require_capability(Capability.SECURITY)
        raise self._not_implemented(Capability.SECURITY)

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None]:
        """Vulnerabilities for (name, version) pairs, keyed `name@version`."""
        self.require_capability(Capability.SECURITY)
        raise self._not_implemented(Capability.SECURITY)

    async def get_bundle_size(self, name: str, version: str | None = None) -> BundleSize | None:
        self.require_capability(Capability.BUNDLE_SIZE)
        raise self._not_implemented(Capability.BUNDLE_SIZE)

    async def get_dependents(self, name: str, version: str) -> DependentsInfo | None:
        """Reverse dependencies from deps.dev, or None without a client or ecosystem."""
        self.require_capability(Capability.DEPENDENTS)
        ecosystem = self.get_ecosystem()
        if self._deps_dev is None or ecosystem is None:
            return None
        return await self._deps_dev.get_dependents(ecosystem, name, version)

    async def get_requirements(self, name: str, version: str) -> RequirementsInfo | None:
        """Declared requirements from deps.dev, or None without a client or ecosystem."""
        self.require_capability(Capability.REQUIREMENTS)
        ecosystem = self.get_ecosystem()
        if self._deps_dev is None or ecosystem is None:
            return None
        return await self._deps_dev.get_requirements(ecosystem, name, version)

    async def close(self) -> None:  # noqa: B027
        """Release adapter-owned resources. Clients are owned by the container."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source_type={self.source_type.value!r})"
