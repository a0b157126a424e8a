"""Tests for source selection and the fallback chain."""

from __future__ import annotations

import asyncio

import pytest
from conftest import CountingDetector, FakeAdapter, detected

from npm_gallery.exceptions import (
    AllSourcesFailedError,
    ApiError,
    ApiErrorType,
    CapabilityNotSupportedError,
    NoSourceAvailableError,
    PackageNotFoundError,
)
from npm_gallery.models import ProjectType, SortOption, SourceConfigOverride, SourceType
from npm_gallery.sources.capabilities import Capability
from npm_gallery.sources.registry import SourceRegistry
from npm_gallery.sources.selector import SourceSelector
from npm_gallery.sources.source_config import SourceConfigManager


def _network_error(client: str = "npm-registry") -> ApiError:
    return ApiError("connection refused", client, ApiErrorType.NETWORK_ERROR)


# =============================================================================
# DETECTION STATE
# =============================================================================


class TestInitialize:
    """Tests for initialize / refresh."""

    async def test_starts_unknown(self, selector: SourceSelector) -> None:
        assert selector.get_current_project_type() is ProjectType.UNKNOWN

    async def test_takes_detected_primary(self) -> None:
        manager = SourceConfigManager()
        selector = SourceSelector(
            SourceRegistry(manager),
            manager,
            CountingDetector(detected(ProjectType.MAVEN, ProjectType.GO)),
        )

        await selector.initialize()

        assert selector.current_project_type is ProjectType.MAVEN
        assert selector.get_detected_project_types() == [ProjectType.MAVEN, ProjectType.GO]

    async def test_repeated_calls_scan_once(
        self, selector: SourceSelector, detector: CountingDetector
    ) -> None:
        await selector.initialize()
        await selector.initialize()

        assert detector.scans == 1

    async def test_concurrent_calls_share_one_scan(
        self, selector: SourceSelector, detector: CountingDetector
    ) -> None:
        await asyncio.gather(*(selector.initialize() for _ in range(5)))

        assert detector.scans == 1
        assert selector.get_current_project_type() is ProjectType.NPM

    async def test_cancelled_caller_does_not_break_detection(
        self, registry: SourceRegistry, config_manager: SourceConfigManager
    ) -> None:
        detector = CountingDetector(detected(ProjectType.MAVEN), delay=0.05)
        selector = SourceSelector(registry, config_manager, detector)

        first = asyncio.ensure_future(selector.initialize())
        await asyncio.sleep(0.01)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        await selector.initialize()

        assert selector.get_current_project_type() is ProjectType.MAVEN
        assert detector.scans == 1

    async def test_cancelled_scan_is_restarted(
        self, registry: SourceRegistry, config_manager: SourceConfigManager
    ) -> None:
        detector = CountingDetector(detected(ProjectType.DOTNET), delay=0.05)
        selector = SourceSelector(registry, config_manager, detector)
        first = asyncio.ensure_future(selector.initialize())
        await asyncio.sleep(0.01)

        selector._init_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        await selector.initialize()

        assert selector.get_current_project_type() is ProjectType.DOTNET
        assert detector.scans == 2

    async def test_detection_error_degrades_to_unknown(
        self, registry: SourceRegistry, config_manager: SourceConfigManager
    ) -> None:
        selector = SourceSelector(
            registry, config_manager, CountingDetector(error=OSError("no access"))
        )

        await selector.initialize()

        assert selector.get_current_project_type() is ProjectType.UNKNOWN
        assert selector.get_detected_project_types() == []

    async def test_manual_type_survives_initialize(self, selector: SourceSelector) -> None:
        selector.set_project_type(ProjectType.DOTNET)

        await selector.initialize()

        assert selector.get_current_project_type() is ProjectType.DOTNET
        assert selector.get_detected_project_types() == [ProjectType.NPM]

    async def test_refresh_rescans_and_resets_manual_type(
        self, selector: SourceSelector, detector: CountingDetector
    ) -> None:
        await selector.initialize()
        selector.set_project_type(ProjectType.MAVEN)

        await selector.refresh()

        assert detector.scans == 2
        assert selector.get_current_project_type() is ProjectType.NPM


class TestSelectionState:
    """Tests for the project type and user-selected source."""

    def test_set_project_type_clears_user_source(self, selector: SourceSelector) -> None:
        selector.set_user_selected_source(SourceType.NPMS_IO)

        selector.set_project_type(ProjectType.MAVEN)

        assert selector.get_user_selected_source() is None
        assert selector.get_current_project_type() is ProjectType.MAVEN

    def test_user_source_round_trip(self, selector: SourceSelector) -> None:
        selector.set_user_selected_source(SourceType.NPMS_IO)
        assert selector.get_user_selected_source() is SourceType.NPMS_IO

        selector.set_user_selected_source(None)
        assert selector.get_user_selected_source() is None

    def test_current_source_prefers_user_choice(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())
        assert selector.get_current_source_type() is SourceType.NPM_REGISTRY

        selector.set_user_selected_source(SourceType.NPMS_IO)

        assert selector.get_current_source_type() is SourceType.NPMS_IO

    def test_current_source_none_with_empty_registry(self, selector: SourceSelector) -> None:
        assert selector.get_current_source_type() is None

    def test_available_sources_only_registered(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter(SourceType.NPMS_IO))
        registry.register(FakeAdapter(SourceType.NUGET))

        assert selector.get_available_sources() == [SourceType.NPMS_IO]


# =============================================================================
# SELECT SOURCE
# =============================================================================


class TestSelectSource:
    """Tests for select_source resolution order."""

    def test_empty_registry_raises(self, selector: SourceSelector) -> None:
        with pytest.raises(NoSourceAvailableError):
            selector.select_source()

    def test_primary_by_default(self, selector: SourceSelector, registry: SourceRegistry) -> None:
        npms = FakeAdapter(SourceType.NPMS_IO)
        npm = FakeAdapter(SourceType.NPM_REGISTRY)
        registry.register(npms)
        registry.register(npm)

        assert selector.select_source() is npm

    def test_explicit_wins(self, selector: SourceSelector, registry: SourceRegistry) -> None:
        registry.register(FakeAdapter(SourceType.NPM_REGISTRY))
        nuget = FakeAdapter(SourceType.NUGET)
        registry.register(nuget)
        selector.set_user_selected_source(SourceType.NPM_REGISTRY)

        assert selector.select_source(SourceType.NUGET) is nuget

    def test_user_source_before_primary(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter(SourceType.NPM_REGISTRY))
        npms = FakeAdapter(SourceType.NPMS_IO)
        registry.register(npms)
        selector.set_user_selected_source(SourceType.NPMS_IO)

        assert selector.select_source() is npms

    def test_unregistered_explicit_falls_through(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        npm = FakeAdapter()
        registry.register(npm)

        assert selector.select_source(SourceType.SONATYPE) is npm

    def test_fallback_when_primary_missing(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        npms = FakeAdapter(SourceType.NPMS_IO)
        registry.register(npms)

        assert selector.select_source() is npms

    def test_any_adapter_when_nothing_configured_is_registered(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        npm = FakeAdapter()
        registry.register(npm)
        selector.set_project_type(ProjectType.GO)

        assert selector.select_source() is npm

    @pytest.mark.parametrize("project_type", list(ProjectType))
    def test_never_raises_with_one_adapter(
        self,
        selector: SourceSelector,
        registry: SourceRegistry,
        project_type: ProjectType,
    ) -> None:
        registry.register(FakeAdapter(SourceType.NUGET))
        selector.set_project_type(project_type)

        assert selector.select_source().source_type is SourceType.NUGET


# =============================================================================
# EXECUTE WITH FALLBACK
# =============================================================================


class TestExecuteWithFallback:
    """Tests for the fallback chain."""

    async def test_first_success_short_circuits(
        self, selector: SourceSelector, registry: SourceRegistry, react
    ) -> None:
        npm = FakeAdapter(packages=[react])
        npms = FakeAdapter(SourceType.NPMS_IO, packages=[react])
        registry.register(npm)
        registry.register(npms)

        info = await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert info.name == "react"
        assert npm.calls == ["info:react"]
        assert npms.calls == []

    async def test_falls_back_after_failure(
        self, selector: SourceSelector, registry: SourceRegistry, react
    ) -> None:
        npm = FakeAdapter(error=_network_error())
        npms = FakeAdapter(SourceType.NPMS_IO, packages=[react])
        registry.register(npm)
        registry.register(npms)

        info = await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert info.version == "18.2.0"
        assert npm.calls == ["info:react"]
        assert npms.calls == ["info:react"]

    async def test_operation_called_once_per_source(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())
        registry.register(FakeAdapter(SourceType.NPMS_IO))
        seen: list[SourceType] = []

        async def fetch(adapter):
            seen.append(adapter.source_type)
            if adapter.source_type is SourceType.NPM_REGISTRY:
                raise _network_error()
            return adapter.source_type

        assert await selector.execute_with_fallback(fetch) is SourceType.NPMS_IO
        assert seen == [SourceType.NPM_REGISTRY, SourceType.NPMS_IO]

    async def test_all_fail_reports_every_error(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter(error=_network_error("npm-registry")))
        registry.register(FakeAdapter(SourceType.NPMS_IO, error=_network_error("npms-io")))

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        message = str(exc_info.value)
        assert "[npm-registry] connection refused" in message
        assert "[npms-io] connection refused" in message
        assert [source for source, _ in exc_info.value.errors] == ["npm-registry", "npms-io"]

    async def test_not_found_everywhere_is_all_failed(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())
        registry.register(FakeAdapter(SourceType.NPMS_IO))

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_package_info("missing"))

        assert all(isinstance(e, PackageNotFoundError) for _, e in exc_info.value.errors)

    async def test_unregistered_sources_skipped(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter(SourceType.NPMS_IO, error=_network_error("npms-io")))

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert len(exc_info.value.errors) == 1

    async def test_nothing_registered_raises_no_source(self, selector: SourceSelector) -> None:
        with pytest.raises(NoSourceAvailableError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert exc_info.value.tried == ["npm-registry", "npms-io"]

    async def test_user_source_is_the_only_attempt(
        self, selector: SourceSelector, registry: SourceRegistry, react
    ) -> None:
        npm = FakeAdapter(packages=[react])
        npms = FakeAdapter(SourceType.NPMS_IO, error=_network_error("npms-io"))
        registry.register(npm)
        registry.register(npms)
        selector.set_user_selected_source(SourceType.NPMS_IO)

        with pytest.raises(AllSourcesFailedError):
            await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert npm.calls == []

    async def test_follows_current_project_type(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        npm = FakeAdapter()
        nuget = FakeAdapter(SourceType.NUGET)
        registry.register(npm)
        registry.register(nuget)
        selector.set_project_type(ProjectType.DOTNET)

        source = await selector.execute_with_fallback(self._source_of)

        assert source is SourceType.NUGET

    async def test_attempt_count_matches_registered_sources(
        self, config_manager: SourceConfigManager, registry: SourceRegistry
    ) -> None:
        config_manager.update_config(
            ProjectType.NPM,
            SourceConfigOverride(fallbacks=[SourceType.NPMS_IO, SourceType.LIBRARIES_IO]),
        )
        selector = SourceSelector(registry, config_manager, CountingDetector())
        registry.register(FakeAdapter(error=_network_error()))
        registry.register(FakeAdapter(SourceType.LIBRARIES_IO, error=_network_error()))

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_package_info("react"))

        assert len(exc_info.value.errors) == 2

    async def test_capability_error_names_capability_and_source(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())
        registry.register(FakeAdapter(SourceType.NPMS_IO))

        with pytest.raises(AllSourcesFailedError) as exc_info:
            await selector.execute_with_fallback(lambda a: a.get_security_info("react", "1.0.0"))

        errors = [error for _, error in exc_info.value.errors]
        assert all(isinstance(e, CapabilityNotSupportedError) for e in errors)
        assert errors[0].capability is Capability.SECURITY
        assert errors[0].source_type == "npm-registry"

    @staticmethod
    async def _source_of(adapter) -> SourceType:
        return adapter.source_type


# =============================================================================
# UI HELPERS
# =============================================================================


class TestOptionHelpers:
    """Tests for sort/filter option lookups."""

    def test_sort_options_from_selected_adapter(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())

        options = selector.get_supported_sort_options()

        assert [o.value for o in options] == ["relevance", "downloads"]

    def test_sort_options_default_to_config_when_empty(self, selector: SourceSelector) -> None:
        options = selector.get_supported_sort_options()

        assert options == [
            SortOption.create(v)
            for v in ["relevance", "popularity", "quality", "maintenance", "name"]
        ]

    def test_filters_default_to_config_when_empty(self, selector: SourceSelector) -> None:
        selector.set_project_type(ProjectType.MAVEN)

        filters = selector.get_supported_filters()

        assert [f.value for f in filters] == ["groupId"]
        assert filters[0].label == "Group ID"
        assert filters[0].placeholder == "groupId (e.g., com.google.inject)"

    def test_filters_from_selected_adapter(
        self, selector: SourceSelector, registry: SourceRegistry
    ) -> None:
        registry.register(FakeAdapter())

        assert [f.value for f in selector.get_supported_filters()] == ["owner"]
