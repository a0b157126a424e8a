"""Workspace project-type detection.

Scans each workspace root for ecosystem marker files and reports every
ecosystem found plus a primary one. Scans are capped per pattern and never
descend into excluded directories (node_modules, bin, obj by default).

Example:
    detector = ProjectDetector([Path.cwd()])
    detected = await detector.detect_projects()
    print(detected.primary, detected.detected_types)
"""

from __future__ import annotations

import asyncio
import fnmatch
import os
from collections.abc import Callable, Sequence
from pathlib import Path

from npm_gallery.constants import DEFAULT_EXCLUDE_DIRS, DEFAULT_MAX_MATCHES_PER_PATTERN
from npm_gallery.logging import get_logger
from npm_gallery.models import DetectedProjects, ProjectInfo, ProjectType

logger = get_logger(__name__)

# (root, pattern, excluded dir names, limit) -> matching files
FileFinder = Callable[[Path, str, Sequence[str], int], list[Path]]

PROJECT_CONFIG_FILES: dict[ProjectType, tuple[str, ...]] = {
    ProjectType.NPM: ("package.json",),
    ProjectType.MAVEN: ("pom.xml",),
    ProjectType.DOTNET: (
        "*.csproj",
        "*.vbproj",
        "*.fsproj",
        "packages.config",
        "Directory.Packages.props",
        "paket.dependencies",
    ),
    ProjectType.GO: ("go.mod",),
}

DETECTION_ORDER: tuple[ProjectType, ...] = (
    ProjectType.NPM,
    ProjectType.MAVEN,
    ProjectType.DOTNET,
    ProjectType.GO,
)


def find_files(root: Path, pattern: str, exclude: Sequence[str], limit: int) -> list[Path]:
    """Walk `root` for file names matching `pattern`, pruning `exclude` dirs."""
    matches: list[Path] = []
    excluded = set(exclude)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in sorted(filenames):
            if fnmatch.fnmatch(filename, pattern):
                matches.append(Path(dirpath) / filename)
                if len(matches) >= limit:
                    return matches
    return matches


def detect_project_type_for_file(path: str | Path) -> ProjectType:
    """Classify a single manifest path by its file name.

    >>> detect_project_type_for_file("/src/app/App.csproj")
    <ProjectType.DOTNET: 'dotnet'>
    >>> detect_project_type_for_file("README.md")
    <ProjectType.UNKNOWN: 'unknown'>
    """
    name = Path(path).name
    for project_type in DETECTION_ORDER:
        if any(fnmatch.fnmatch(name, pattern) for pattern in PROJECT_CONFIG_FILES[project_type]):
            return project_type
    return ProjectType.UNKNOWN


class ProjectDetector:
    """Detects which ecosystems the workspace roots belong to.

    Args:
        workspace_roots: Folders to scan.
        file_finder: Blocking file search; runs in the default executor.
        exclude_dirs: Directory names never descended into.
        max_matches_per_pattern: Per-pattern cap on matches.
    """

    def __init__(
        self,
        workspace_roots: Sequence[Path],
        *,
        file_finder: FileFinder = find_files,
        exclude_dirs: Sequence[str] = DEFAULT_EXCLUDE_DIRS,
        max_matches_per_pattern: int = DEFAULT_MAX_MATCHES_PER_PATTERN,
    ) -> None:
        self._roots = [Path(root) for root in workspace_roots]
        self._file_finder = file_finder
        self._exclude_dirs = tuple(exclude_dirs)
        self._max_matches = max_matches_per_pattern

    @property
    def workspace_roots(self) -> list[Path]:
        return list(self._roots)

    async def detect_projects(self) -> DetectedProjects:
        """Scan every root. Any scan error yields an empty result."""
        loop = asyncio.get_running_loop()
        try:
            projects = await loop.run_in_executor(None, self._scan)
        except Exception as e:
            logger.warning(f"Project detection failed: {e}")
            return DetectedProjects()

        detected_types = [t for t in DETECTION_ORDER if any(p.type is t for p in projects)]
        primary = detected_types[0] if detected_types else ProjectType.UNKNOWN
        logger.debug(
            f"Detected project types: {[t.value for t in detected_types]}",
            extra={"projects": len(projects), "primary": primary.value},
        )
        return DetectedProjects(projects=projects, detected_types=detected_types, primary=primary)

    async def has_project_type(self, project_type: ProjectType) -> bool:
        detected = await self.detect_projects()
        return project_type in detected.detected_types

    def _scan(self) -> list[ProjectInfo]:
        projects: list[ProjectInfo] = []
        for root in self._roots:
            for project_type in DETECTION_ORDER:
                marker = self._first_marker(root, PROJECT_CONFIG_FILES[project_type])
                if marker is not None:
                    projects.append(
                        ProjectInfo(
                            type=project_type,
                            config_file=str(marker),
                            workspace_path=str(root),
                        )
                    )
        return projects

    def _first_marker(self, root: Path, patterns: Sequence[str]) -> Path | None:
        for pattern in patterns:
            matches = self._file_finder(root, pattern, self._exclude_dirs, self._max_matches)
            if matches:
                return matches[0]
        return None
