"""Tests for the adapter registry."""

from __future__ import annotations

from conftest import FakeAdapter

from npm_gallery.models import ProjectType, SourceConfigOverride, SourceType
from npm_gallery.sources.registry import SourceRegistry
from npm_gallery.sources.source_config import SourceConfigManager


class TestRegistration:
    """Tests for register / unregister."""

    def test_register_keys_by_source_type(self, registry: SourceRegistry) -> None:
        adapter = FakeAdapter(SourceType.NPMS_IO)

        registry.register(adapter)

        assert registry.get_adapter(SourceType.NPMS_IO) is adapter
        assert registry.has_adapter(SourceType.NPMS_IO)
        assert not registry.has_adapter(SourceType.NPM_REGISTRY)

    def test_register_replaces_existing(self, registry: SourceRegistry) -> None:
        first = FakeAdapter()
        second = FakeAdapter()

        registry.register(first)
        registry.register(second)

        assert registry.get_adapter(SourceType.NPM_REGISTRY) is second
        assert len(registry) == 1

    def test_register_under_explicit_key(self, registry: SourceRegistry) -> None:
        adapter = FakeAdapter(SourceType.NPM_REGISTRY)

        registry.register(adapter, SourceType.LIBRARIES_IO)

        assert registry.get_adapter(SourceType.LIBRARIES_IO) is adapter
        assert registry.get_adapter(SourceType.NPM_REGISTRY) is None

    def test_unregister(self, registry: SourceRegistry) -> None:
        registry.register(FakeAdapter())

        assert registry.unregister(SourceType.NPM_REGISTRY) is True
        assert registry.unregister(SourceType.NPM_REGISTRY) is False
        assert len(registry) == 0

    def test_clear(self, registry: SourceRegistry) -> None:
        registry.register(FakeAdapter())
        registry.register(FakeAdapter(SourceType.NUGET))

        registry.clear()

        assert registry.get_all_adapters() == []
        assert registry.get_registered_types() == []

    def test_registration_order_preserved(self, registry: SourceRegistry) -> None:
        registry.register(FakeAdapter(SourceType.NUGET))
        registry.register(FakeAdapter(SourceType.SONATYPE))

        assert registry.get_registered_types() == [SourceType.NUGET, SourceType.SONATYPE]


class TestProjectLookup:
    """Tests for per-project adapter ordering."""

    def test_adapters_follow_configured_order(self, registry: SourceRegistry) -> None:
        npms = FakeAdapter(SourceType.NPMS_IO)
        npm = FakeAdapter(SourceType.NPM_REGISTRY)
        registry.register(npms)
        registry.register(npm)

        assert registry.get_adapters_for_project(ProjectType.NPM) == [npm, npms]
        assert registry.get_default_adapter(ProjectType.NPM) is npm

    def test_unregistered_sources_skipped(self, registry: SourceRegistry) -> None:
        npms = FakeAdapter(SourceType.NPMS_IO)
        registry.register(npms)

        assert registry.get_adapters_for_project(ProjectType.NPM) == [npms]
        assert registry.get_default_adapter(ProjectType.NPM) is npms

    def test_no_adapter_for_go(self, registry: SourceRegistry) -> None:
        registry.register(FakeAdapter())

        assert registry.get_adapters_for_project(ProjectType.GO) == []
        assert registry.get_default_adapter(ProjectType.GO) is None

    def test_reads_config_live(self) -> None:
        manager = SourceConfigManager()
        registry = SourceRegistry(manager)
        npm = FakeAdapter(SourceType.NPM_REGISTRY)
        npms = FakeAdapter(SourceType.NPMS_IO)
        registry.register(npm)
        registry.register(npms)

        manager.update_config(
            ProjectType.NPM,
            SourceConfigOverride(primary=SourceType.NPMS_IO, fallbacks=[]),
        )

        assert registry.get_adapters_for_project(ProjectType.NPM) == [npms]
