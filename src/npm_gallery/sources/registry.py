"""In-memory registry of source adapters keyed by SourceType.

Example:
    registry = SourceRegistry(SourceConfigManager())
    registry.register(NpmRegistrySourceAdapter(NpmRegistryClient()))
    registry.get_adapters_for_project(ProjectType.NPM)  # [npm-registry adapter]
"""

from __future__ import annotations

from npm_gallery.logging import get_logger
from npm_gallery.models import ProjectType, SourceType
from npm_gallery.sources.base import SourceAdapter  # noqa: TC001 - used at runtime
from npm_gallery.sources.source_config import SourceConfigManager

logger = get_logger(__name__)


class SourceRegistry:
    """Maps each SourceType to at most one adapter instance.

    Args:
        config_manager: Supplies the ordered source list per project type.
    """

    def __init__(self, config_manager: SourceConfigManager) -> None:
        self._config_manager = config_manager
        self._adapters: dict[SourceType, SourceAdapter] = {}

    def register(self, adapter: SourceAdapter, source_type: SourceType | None = None) -> None:
        """Register `adapter`, replacing any adapter already holding its type.

        Args:
            adapter: The adapter instance.
            source_type: Registration key; defaults to `adapter.source_type`.
        """
        key = source_type or adapter.source_type
        if key in self._adapters:
            logger.debug(f"Replacing adapter for {key.value}")
        self._adapters[key] = adapter
        logger.debug(
            f"Registered adapter: {key.value}",
            extra={"capabilities": [c.value for c in adapter.get_supported_capabilities()]},
        )

    def unregister(self, source_type: SourceType) -> bool:
        """Remove the adapter for `source_type`. Returns whether one existed."""
        removed = self._adapters.pop(source_type, None) is not None
        if removed:
            logger.debug(f"Unregistered adapter: {source_type.value}")
        return removed

    def get_adapter(self, source_type: SourceType) -> SourceAdapter | None:
        return self._adapters.get(source_type)

    def has_adapter(self, source_type: SourceType) -> bool:
        return source_type in self._adapters

    def get_adapters_for_project(self, project_type: ProjectType) -> list[SourceAdapter]:
        """Registered adapters for the project's configured sources, in retry order.

        Configured sources with no registered adapter are skipped.
        """
        adapters = []
        for source_type in self._config_manager.get_all_sources(project_type):
            adapter = self._adapters.get(source_type)
            if adapter is not None:
                adapters.append(adapter)
        return adapters

    def get_registered_types(self) -> list[SourceType]:
        return list(self._adapters)

    def get_all_adapters(self) -> list[SourceAdapter]:
        return list(self._adapters.values())

    def get_default_adapter(self, project_type: ProjectType) -> SourceAdapter | None:
        adapters = self.get_adapters_for_project(project_type)
        return adapters[0] if adapters else None

    def clear(self) -> None:
        self._adapters.clear()

    def __len__(self) -> int:
        return len(self._adapters)
