"""Shared fixtures: in-memory adapters and detectors built on the real base classes."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

import pytest

from npm_gallery.exceptions import PackageNotFoundError
from npm_gallery.models import (
    DetectedProjects,
    FilterOption,
    PackageDetails,
    PackageInfo,
    ProjectType,
    SearchOptions,
    SearchResult,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability
from npm_gallery.sources.detector import ProjectDetector
from npm_gallery.sources.registry import SourceRegistry
from npm_gallery.sources.selector import SourceSelector
from npm_gallery.sources.source_config import SourceConfigManager


class FakeAdapter(SourceAdapter):
    """Adapter serving a fixed package list, optionally failing every call."""

    source_type = SourceType.NPM_REGISTRY
    display_name = "Fake"
    project_type = ProjectType.NPM
    supported_sort_options = [SortOption.create("relevance"), SortOption.create("downloads")]
    supported_filters = [FilterOption.create("owner")]

    def __init__(
        self,
        source_type: SourceType = SourceType.NPM_REGISTRY,
        *,
        capabilities: Iterable[Capability] = (),
        packages: Iterable[PackageInfo] = (),
        error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.source_type = source_type  # type: ignore[misc]
        self._declared = set(capabilities)
        self.packages = {p.name: p for p in packages}
        self.error = error
        self.calls: list[str] = []

    def declared_capabilities(self) -> Iterable[Capability]:
        return self._declared

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def search(self, options: SearchOptions) -> SearchResult:
        self._record(f"search:{options.query}")
        matches = [p for p in self.packages.values() if options.query.lower() in p.name.lower()]
        return SearchResult(packages=matches, total=len(matches))

    async def get_package_info(self, name: str) -> PackageInfo:
        self._record(f"info:{name}")
        try:
            return self.packages[name]
        except KeyError:
            raise PackageNotFoundError(name, self.source_type.value) from None

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        info = await self.get_package_info(name)
        return PackageDetails(**info.model_dump(), readme=f"# {name}")

    async def get_versions(self, name: str) -> list[VersionInfo]:
        info = await self.get_package_info(name)
        return [VersionInfo(version=info.version)]


class CountingDetector(ProjectDetector):
    """Detector returning a fixed result and counting scans."""

    def __init__(
        self,
        result: DetectedProjects | None = None,
        error: Exception | None = None,
        delay: float = 0,
    ):
        super().__init__([])
        self.result = result or DetectedProjects()
        self.error = error
        self.delay = delay
        self.scans = 0

    async def detect_projects(self) -> DetectedProjects:
        self.scans += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def detected(*types: ProjectType) -> DetectedProjects:
    return DetectedProjects(
        detected_types=list(types),
        primary=types[0] if types else ProjectType.UNKNOWN,
    )


@pytest.fixture
def react() -> PackageInfo:
    return PackageInfo(name="react", version="18.2.0", description="UI library")


@pytest.fixture
def config_manager() -> SourceConfigManager:
    return SourceConfigManager()


@pytest.fixture
def registry(config_manager: SourceConfigManager) -> SourceRegistry:
    return SourceRegistry(config_manager)


@pytest.fixture
def detector() -> CountingDetector:
    return CountingDetector(detected(ProjectType.NPM))


@pytest.fixture
def selector(
    registry: SourceRegistry,
    config_manager: SourceConfigManager,
    detector: CountingDetector,
) -> SourceSelector:
    return SourceSelector(registry, config_manager, detector)


@pytest.fixture
def npm_workspace(tmp_path: Path) -> Path:
    """Workspace with a package.json and a pnpm lock file."""
    (tmp_path / "package.json").write_text('{"name": "app"}')
    (tmp_path / "pnpm-lock.yaml").write_text("lockfileVersion: '6.0'\n")
    return tmp_path
