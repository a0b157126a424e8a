"""Tests for per-ecosystem source configuration."""

from __future__ import annotations

from npm_gallery.models import ProjectType, SourceConfig, SourceConfigOverride, SourceType
from npm_gallery.sources.source_config import (
    DEFAULT_SOURCE_CONFIG,
    SourceConfigManager,
    merge_config,
)


class TestDefaults:
    """Tests for the built-in source table."""

    def test_every_project_type_configured(self) -> None:
        assert set(DEFAULT_SOURCE_CONFIG) == set(ProjectType)

    def test_npm_order(self) -> None:
        manager = SourceConfigManager()

        assert manager.get_all_sources(ProjectType.NPM) == [
            SourceType.NPM_REGISTRY,
            SourceType.NPMS_IO,
        ]

    def test_unknown_mirrors_npm(self) -> None:
        manager = SourceConfigManager()

        assert manager.get_config(ProjectType.UNKNOWN) == manager.get_config(ProjectType.NPM)

    def test_maven_and_dotnet_have_single_source(self) -> None:
        manager = SourceConfigManager()

        assert manager.get_all_sources(ProjectType.MAVEN) == [SourceType.SONATYPE]
        assert manager.get_all_sources(ProjectType.DOTNET) == [SourceType.NUGET]
        assert manager.get_fallback_sources(ProjectType.MAVEN) == []

    def test_option_values(self) -> None:
        manager = SourceConfigManager()

        assert manager.get_sort_options(ProjectType.MAVEN) == ["relevance", "popularity"]
        assert manager.get_filters(ProjectType.DOTNET) == ["author", "tags", "packageType"]

    def test_managers_do_not_share_state(self) -> None:
        first = SourceConfigManager()
        first.update_config(ProjectType.NPM, SourceConfigOverride(fallbacks=[]))

        assert SourceConfigManager().get_fallback_sources(ProjectType.NPM) == [SourceType.NPMS_IO]
        assert DEFAULT_SOURCE_CONFIG[ProjectType.NPM].fallbacks == [SourceType.NPMS_IO]

    def test_returned_lists_are_copies(self) -> None:
        manager = SourceConfigManager()

        manager.get_sort_options(ProjectType.NPM).clear()
        manager.get_fallback_sources(ProjectType.NPM).clear()

        assert manager.get_sort_options(ProjectType.NPM)
        assert manager.get_fallback_sources(ProjectType.NPM)


class TestOverrides:
    """Tests for shallow merging."""

    def test_empty_override_is_identity(self) -> None:
        base = DEFAULT_SOURCE_CONFIG[ProjectType.NPM]

        assert merge_config(base, SourceConfigOverride()) == base

    def test_override_replaces_lists_entirely(self) -> None:
        base = SourceConfig(
            primary=SourceType.NPM_REGISTRY,
            fallbacks=[SourceType.NPMS_IO],
            sort_options=["relevance", "name"],
        )

        merged = merge_config(base, SourceConfigOverride(sort_options=["name"]))

        assert merged.sort_options == ["name"]
        assert merged.fallbacks == [SourceType.NPMS_IO]
        assert merged.primary is SourceType.NPM_REGISTRY

    def test_update_then_read_back(self) -> None:
        manager = SourceConfigManager()

        manager.update_config(
            ProjectType.NPM,
            SourceConfigOverride(primary=SourceType.NPMS_IO, fallbacks=[SourceType.NPM_REGISTRY]),
        )

        assert manager.get_primary_source(ProjectType.NPM) is SourceType.NPMS_IO
        assert manager.get_all_sources(ProjectType.NPM) == [
            SourceType.NPMS_IO,
            SourceType.NPM_REGISTRY,
        ]
        defaults = DEFAULT_SOURCE_CONFIG[ProjectType.NPM]
        assert manager.get_filters(ProjectType.NPM) == defaults.filters

    def test_overrides_applied_at_construction(self) -> None:
        manager = SourceConfigManager(
            {ProjectType.MAVEN: SourceConfigOverride(filters=["groupId", "artifactId"])}
        )

        assert manager.get_filters(ProjectType.MAVEN) == ["groupId", "artifactId"]

    def test_duplicates_kept_as_configured(self) -> None:
        manager = SourceConfigManager(
            {ProjectType.NPM: SourceConfigOverride(fallbacks=[SourceType.NPM_REGISTRY])}
        )

        assert manager.get_all_sources(ProjectType.NPM) == [
            SourceType.NPM_REGISTRY,
            SourceType.NPM_REGISTRY,
        ]

    def test_override_accepts_camel_case_keys(self) -> None:
        override = SourceConfigOverride.model_validate({"sortOptions": ["name"]})

        assert override.sort_options == ["name"]
