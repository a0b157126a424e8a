"""Per-ecosystem source configuration.

Each project type maps to a SourceConfig: the primary source, ordered
fallbacks, and the sort/filter option values the search UI offers.
`[primary, *fallbacks]` is the retry order used by the selector.

Overrides are shallow: a field present in a SourceConfigOverride replaces
the current value entirely (lists are not merged), absent fields keep it.

Example:
    manager = SourceConfigManager({
        ProjectType.NPM: SourceConfigOverride(fallbacks=[]),
    })
    manager.get_all_sources(ProjectType.NPM)  # [SourceType.NPM_REGISTRY]
"""

from __future__ import annotations

from collections.abc import Mapping

from npm_gallery.logging import get_logger
from npm_gallery.models import ProjectType, SourceConfig, SourceConfigOverride, SourceType

logger = get_logger(__name__)

NPM_SORT_OPTIONS = ["relevance", "popularity", "quality", "maintenance", "name"]
NPM_FILTERS = ["author", "maintainer", "scope", "keywords"]

DEFAULT_SOURCE_CONFIG: dict[ProjectType, SourceConfig] = {
    ProjectType.NPM: SourceConfig(
        primary=SourceType.NPM_REGISTRY,
        fallbacks=[SourceType.NPMS_IO],
        sort_options=NPM_SORT_OPTIONS,
        filters=NPM_FILTERS,
    ),
    ProjectType.MAVEN: SourceConfig(
        primary=SourceType.SONATYPE,
        sort_options=["relevance", "popularity"],
        filters=["groupId"],
    ),
    ProjectType.GO: SourceConfig(
        primary=SourceType.PKG_GO_DEV,
        sort_options=["relevance", "popularity"],
    ),
    ProjectType.DOTNET: SourceConfig(
        primary=SourceType.NUGET,
        sort_options=["relevance", "popularity", "name"],
        filters=["author", "tags", "packageType"],
    ),
    ProjectType.UNKNOWN: SourceConfig(
        primary=SourceType.NPM_REGISTRY,
        fallbacks=[SourceType.NPMS_IO],
        sort_options=NPM_SORT_OPTIONS,
        filters=NPM_FILTERS,
    ),
}


def merge_config(base: SourceConfig, override: SourceConfigOverride) -> SourceConfig:
    """Return `base` with every field set on `override` replaced."""
    update = override.model_dump(exclude_unset=True, exclude_none=True)
    return base.model_copy(update=update, deep=True)


class SourceConfigManager:
    """Holds the effective SourceConfig for every project type."""

    def __init__(
        self, overrides: Mapping[ProjectType, SourceConfigOverride] | None = None
    ) -> None:
        self._configs: dict[ProjectType, SourceConfig] = {
            project_type: config.model_copy(deep=True)
            for project_type, config in DEFAULT_SOURCE_CONFIG.items()
        }
        for project_type, override in (overrides or {}).items():
            self.update_config(project_type, override)

    def get_config(self, project_type: ProjectType) -> SourceConfig:
        """Config for `project_type`, or the `unknown` config if it has none."""
        return self._configs.get(project_type) or self._configs[ProjectType.UNKNOWN]

    def get_primary_source(self, project_type: ProjectType) -> SourceType:
        return self.get_config(project_type).primary

    def get_fallback_sources(self, project_type: ProjectType) -> list[SourceType]:
        return list(self.get_config(project_type).fallbacks)

    def get_all_sources(self, project_type: ProjectType) -> list[SourceType]:
        """Primary followed by fallbacks. Duplicates are kept as configured."""
        config = self.get_config(project_type)
        return [config.primary, *config.fallbacks]

    def get_sort_options(self, project_type: ProjectType) -> list[str]:
        return list(self.get_config(project_type).sort_options)

    def get_filters(self, project_type: ProjectType) -> list[str]:
        return list(self.get_config(project_type).filters)

    def update_config(self, project_type: ProjectType, override: SourceConfigOverride) -> None:
        """Shallow-merge `override` into the config for `project_type`."""
        self._configs[project_type] = merge_config(self.get_config(project_type), override)
        logger.debug(
            f"Source config updated for {project_type.value}",
            extra={"sources": [s.value for s in self.get_all_sources(project_type)]},
        )
