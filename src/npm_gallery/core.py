"""Service container for NPM Gallery.

This module wires the upstream clients, the source adapters, the project
detector and the source selector into one object, and exposes the entry
points a UI layer needs to drive ecosystem and source switching.

Example:
    container = ServiceContainer([Path.cwd()], load_config())
    await container.initialize()
    container.get_current_project_type()  # ProjectType.NPM
    info = await container.packages.get_package_info("react")
    await container.close()
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from npm_gallery.adapters import (
    LibrariesIoSourceAdapter,
    NpmRegistrySourceAdapter,
    NpmsSourceAdapter,
    NuGetSourceAdapter,
    SonatypeSourceAdapter,
)
from npm_gallery.cache import TTLCache
from npm_gallery.clients import (
    BaseApiClient,
    BundlephobiaClient,
    DepsDevClient,
    LibrariesIoClient,
    NpmAuditClient,
    NpmRegistryClient,
    NpmsClient,
    NuGetClient,
    OsvClient,
    SonatypeClient,
)
from npm_gallery.config import GalleryConfig, load_config
from npm_gallery.logging import get_logger
from npm_gallery.models import FilterOption, ProjectType, SortOption, SourceType
from npm_gallery.services import InstallService, PackageService, SearchService
from npm_gallery.sources.detector import ProjectDetector
from npm_gallery.sources.registry import SourceRegistry
from npm_gallery.sources.selector import SourceSelector
from npm_gallery.sources.source_config import SourceConfigManager

logger = get_logger(__name__)


class ServiceContainer:
    """Owns every client, adapter and service for one set of workspace roots.

    Args:
        workspace_roots: Folders scanned for project types.
        config: Loaded configuration; defaults when omitted.
        detector: Replaces the default filesystem detector.
    """

    def __init__(
        self,
        workspace_roots: Sequence[Path] = (),
        config: GalleryConfig | None = None,
        *,
        detector: ProjectDetector | None = None,
    ) -> None:
        self._config = config or GalleryConfig()
        self._workspace_roots = [Path(root) for root in workspace_roots]
        workspace_root = self._workspace_roots[0] if self._workspace_roots else None

        http = self._config.http
        client_kwargs = {"timeout": http.timeout_seconds, "user_agent": http.user_agent}

        def cache() -> TTLCache:
            return TTLCache(
                default_ttl=self._config.cache.ttl_seconds,
                max_size=self._config.cache.max_size,
            )

        self.npm_registry_client = NpmRegistryClient(cache=cache(), **client_kwargs)
        self.npms_client = NpmsClient(cache=cache(), **client_kwargs)
        self.bundlephobia_client = BundlephobiaClient(cache=cache(), **client_kwargs)
        self.osv_client = OsvClient(cache=cache(), **client_kwargs)
        self.deps_dev_client = DepsDevClient(cache=cache(), **client_kwargs)
        self.sonatype_client = SonatypeClient(cache=cache(), **client_kwargs)
        self.nuget_client = NuGetClient(cache=cache(), **client_kwargs)
        self.npm_audit_client = NpmAuditClient(cache=cache(), **client_kwargs)
        self.libraries_io_client = LibrariesIoClient(
            api_key=self._config.libraries_io.api_key, cache=cache(), **client_kwargs
        )

        self.config_manager = SourceConfigManager(self._config.sources)
        self.registry = SourceRegistry(self.config_manager)
        self._register_adapters(workspace_root)

        self.detector = detector or ProjectDetector(
            self._workspace_roots,
            exclude_dirs=self._config.detection.exclude_dirs,
            max_matches_per_pattern=self._config.detection.max_matches_per_pattern,
        )
        self.selector = SourceSelector(self.registry, self.config_manager, self.detector)

        self.packages = PackageService(self.selector)
        self.search = SearchService(self.selector)
        self.install = InstallService(self.selector, self._workspace_roots)

        logger.info(
            "ServiceContainer initialized",
            extra={
                "workspace_roots": [str(root) for root in self._workspace_roots],
                "sources": [s.value for s in self.registry.get_registered_types()],
            },
        )

    def _register_adapters(self, workspace_root: Path | None) -> None:
        package_manager = self._config.package_manager
        self.registry.register(
            NpmRegistrySourceAdapter(
                self.npm_registry_client,
                bundlephobia=self.bundlephobia_client,
                osv=self.osv_client,
                audit=self.npm_audit_client,
                deps_dev=self.deps_dev_client,
                workspace_root=workspace_root,
                default_package_manager=package_manager,
                libraries_io=self.libraries_io_client,
            )
        )
        self.registry.register(
            NpmsSourceAdapter(
                self.npms_client,
                registry=self.npm_registry_client,
                bundlephobia=self.bundlephobia_client,
                osv=self.osv_client,
                audit=self.npm_audit_client,
                workspace_root=workspace_root,
                default_package_manager=package_manager,
            )
        )
        self.registry.register(
            SonatypeSourceAdapter(
                self.sonatype_client, osv=self.osv_client, deps_dev=self.deps_dev_client
            )
        )
        self.registry.register(
            NuGetSourceAdapter(
                self.nuget_client, osv=self.osv_client, deps_dev=self.deps_dev_client
            )
        )
        self.registry.register(
            LibrariesIoSourceAdapter(
                self.libraries_io_client,
                osv=self.osv_client,
                project_type_provider=self.get_current_project_type,
            )
        )

    @property
    def config(self) -> GalleryConfig:
        return self._config

    @property
    def clients(self) -> list[BaseApiClient]:
        return [
            self.npm_registry_client,
            self.npms_client,
            self.bundlephobia_client,
            self.osv_client,
            self.deps_dev_client,
            self.sonatype_client,
            self.nuget_client,
            self.npm_audit_client,
            self.libraries_io_client,
        ]

    async def initialize(self) -> None:
        """Detect the workspace project type. Safe to call repeatedly."""
        await self.selector.initialize()

    # -------------------------------------------------------------------------
    # UI facade
    # -------------------------------------------------------------------------

    def get_current_project_type(self) -> ProjectType:
        return self.selector.get_current_project_type()

    def set_project_type(self, project_type: ProjectType) -> None:
        self.selector.set_project_type(project_type)

    def get_current_source_type(self) -> SourceType | None:
        return self.selector.get_current_source_type()

    def set_selected_source(self, source_type: SourceType | None) -> None:
        self.selector.set_user_selected_source(source_type)

    def get_available_sources(self) -> list[SourceType]:
        return self.selector.get_available_sources()

    def get_detected_project_types(self) -> list[ProjectType]:
        return self.selector.get_detected_project_types()

    def get_supported_sort_options(self) -> list[SortOption]:
        return self.selector.get_supported_sort_options()

    def get_supported_filters(self) -> list[FilterOption]:
        return self.selector.get_supported_filters()

    async def close(self) -> None:
        """Close every adapter and upstream client."""
        for adapter in self.registry.get_all_adapters():
            await adapter.close()
        for client in self.clients:
            await client.close()
        logger.debug("ServiceContainer closed")


# Process-wide container (built on first access)
_services: ServiceContainer | None = None


def get_services(workspace_roots: Sequence[Path] | None = None) -> ServiceContainer:
    """Get or create the process-wide ServiceContainer.

    The first call fixes the workspace roots (cwd when omitted) and loads
    configuration from `.npmgallery.yaml`.
    """
    global _services
    if _services is None:
        roots = list(workspace_roots) if workspace_roots is not None else [Path.cwd()]
        _services = ServiceContainer(roots, load_config())
    return _services


def reset_services() -> None:
    """Discard the process-wide container. For tests."""
    global _services
    _services = None
