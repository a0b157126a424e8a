"""Source selection and the fallback chain.

The selector tracks two independent pieces of state: the current project
type (detected, or set explicitly) and an optional user-selected source.
It offers two strategies over the registry:

- `select_source()` picks one adapter, degrading to any registered adapter
  rather than failing. Used for static reads such as sort options.
- `execute_with_fallback()` runs an operation against each configured
  source in order until one succeeds. Used for upstream fetches.

Example:
    selector = SourceSelector(registry, config_manager, detector)
    await selector.initialize()
    info = await selector.execute_with_fallback(lambda a: a.get_package_info("react"))
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from npm_gallery.exceptions import AllSourcesFailedError, NoSourceAvailableError
from npm_gallery.logging import get_logger
from npm_gallery.models import DetectedProjects, FilterOption, ProjectType, SortOption, SourceType
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.detector import ProjectDetector  # noqa: TC001 - used at runtime
from npm_gallery.sources.registry import SourceRegistry  # noqa: TC001 - used at runtime
from npm_gallery.sources.source_config import SourceConfigManager  # noqa: TC001 - used at runtime

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    source_type: SourceType
    value: T


@dataclass(frozen=True)
class Failure:
    source_type: SourceType
    error: Exception


Attempt = Success[T] | Failure


class SourceSelector:
    """Chooses adapters for the current project type.

    Args:
        registry: Registered adapters.
        config_manager: Per-project source ordering and option defaults.
        detector: Workspace detector used by `initialize`.
    """

    def __init__(
        self,
        registry: SourceRegistry,
        config_manager: SourceConfigManager,
        detector: ProjectDetector,
    ) -> None:
        self._registry = registry
        self._config_manager = config_manager
        self._detector = detector
        self._current_project_type = ProjectType.UNKNOWN
        self._project_type_overridden = False
        self._user_selected_source: SourceType | None = None
        self._detected = DetectedProjects()
        self._init_task: asyncio.Task[None] | None = None

    # -------------------------------------------------------------------------
    # Detection
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Run project detection once. Concurrent callers share the same scan.

        Cancelling a caller does not cancel the shared scan.
        """
        if self._init_task is None or self._init_task.cancelled():
            self._init_task = asyncio.ensure_future(self._detect())
        await asyncio.shield(self._init_task)

    async def refresh(self) -> None:
        """Re-run detection, replacing any manually set project type."""
        self._init_task = None
        self._project_type_overridden = False
        await self.initialize()

    async def _detect(self) -> None:
        try:
            detected = await self._detector.detect_projects()
        except Exception as e:
            logger.warning(f"Project detection failed, using unknown: {e}")
            detected = DetectedProjects()

        self._detected = detected
        if not self._project_type_overridden:
            self._current_project_type = detected.primary
        logger.debug(
            f"Project type: {self._current_project_type.value}",
            extra={"detected": [t.value for t in detected.detected_types]},
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def current_project_type(self) -> ProjectType:
        return self._current_project_type

    def get_current_project_type(self) -> ProjectType:
        return self._current_project_type

    def set_project_type(self, project_type: ProjectType) -> None:
        """Override the project type. Clears the user-selected source."""
        self._current_project_type = project_type
        self._project_type_overridden = True
        self._user_selected_source = None
        logger.debug(f"Project type set to {project_type.value}")

    def set_user_selected_source(self, source_type: SourceType | None) -> None:
        self._user_selected_source = source_type
        logger.debug(f"User-selected source: {source_type.value if source_type else None}")

    def get_user_selected_source(self) -> SourceType | None:
        return self._user_selected_source

    def get_detected_project_types(self) -> list[ProjectType]:
        return list(self._detected.detected_types)

    def get_detected_projects(self) -> DetectedProjects:
        return self._detected

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select_source(self, explicit: SourceType | None = None) -> SourceAdapter:
        """Pick one adapter.

        Resolution order: `explicit`, the user-selected source, the configured
        primary, the first registered fallback, then any registered adapter.

        Raises:
            NoSourceAvailableError: Only when the registry is empty.
        """
        project_type = self._current_project_type
        candidates = [
            explicit,
            self._user_selected_source,
            self._config_manager.get_primary_source(project_type),
            *self._config_manager.get_fallback_sources(project_type),
        ]
        for source_type in candidates:
            if source_type is None:
                continue
            adapter = self._registry.get_adapter(source_type)
            if adapter is not None:
                logger.debug(f"Selected source: {source_type.value}")
                return adapter

        adapters = self._registry.get_all_adapters()
        if not adapters:
            raise NoSourceAvailableError()
        logger.debug(
            f"No configured source registered for {project_type.value}, "
            f"using {adapters[0].source_type.value}"
        )
        return adapters[0]

    def _try_list(self) -> list[SourceType]:
        if self._user_selected_source is not None:
            return [self._user_selected_source]
        return self._config_manager.get_all_sources(self._current_project_type)

    async def _attempt(
        self, adapter: SourceAdapter, operation: Callable[[SourceAdapter], Awaitable[T]]
    ) -> Attempt[T]:
        try:
            return Success(adapter.source_type, await operation(adapter))
        except Exception as e:
            return Failure(adapter.source_type, e)

    async def execute_with_fallback(
        self, operation: Callable[[SourceAdapter], Awaitable[T]]
    ) -> T:
        """Run `operation` against each configured source until one succeeds.

        Sources are tried one at a time in order. Sources with no registered
        adapter are skipped.

        Raises:
            NoSourceAvailableError: No source in the try-list is registered.
            AllSourcesFailedError: Every registered source failed.
        """
        try_list = self._try_list()
        failures: list[Failure] = []
        for source_type in try_list:
            adapter = self._registry.get_adapter(source_type)
            if adapter is None:
                logger.debug(f"Skipping unregistered source: {source_type.value}")
                continue

            attempt = await self._attempt(adapter, operation)
            if isinstance(attempt, Success):
                return attempt.value
            logger.warning(
                f"Source {source_type.value} failed: {attempt.error}",
                extra={"error_type": type(attempt.error).__name__},
            )
            failures.append(attempt)

        if not failures:
            raise NoSourceAvailableError([s.value for s in try_list])
        raise AllSourcesFailedError([(f.source_type.value, f.error) for f in failures])

    # -------------------------------------------------------------------------
    # UI helpers
    # -------------------------------------------------------------------------

    def get_supported_sort_options(self) -> list[SortOption]:
        """Sort options of the selected adapter, or the configured defaults."""
        try:
            return list(self.select_source().supported_sort_options)
        except NoSourceAvailableError:
            values = self._config_manager.get_sort_options(self._current_project_type)
            return [SortOption.create(value) for value in values]

    def get_supported_filters(self) -> list[FilterOption]:
        """Filters of the selected adapter, or the configured defaults."""
        try:
            return list(self.select_source().supported_filters)
        except NoSourceAvailableError:
            values = self._config_manager.get_filters(self._current_project_type)
            return [FilterOption.create(value) for value in values]

    def get_available_sources(self) -> list[SourceType]:
        """Configured sources for the current project type that are registered."""
        return [
            source_type
            for source_type in self._config_manager.get_all_sources(self._current_project_type)
            if self._registry.has_adapter(source_type)
        ]

    def get_current_source_type(self) -> SourceType | None:
        if self._user_selected_source is not None:
            return self._user_selected_source
        try:
            return self.select_source().source_type
        except NoSourceAvailableError:
            return None
