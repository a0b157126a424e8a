"""Transformer for Libraries.io project documents.

Raw shapes (as normalized by LibrariesIoClient):
    search:   {"total": int | None, "projects": [project, ...]}
    details:  {"project": project, "versions": [version, ...],
               "dependencies": dependencies response or None}

Project keys used: name, description, homepage, repository_url, licenses,
repository_license, normalized_licenses, keywords, dependents_count,
latest_release_number, latest_stable_release_number, deprecation_reason.
Version keys: number, published_at.
"""

from __future__ import annotations

from typing import Any

from npm_gallery.models import (
    PackageDetails,
    PackageInfo,
    PackageRepository,
    SearchResult,
    VersionInfo,
)
from npm_gallery.sources.base import SourceTransformer
from npm_gallery.utils import version_key

UNKNOWN_VERSION = "0.0.0"


def latest_version(project: dict[str, Any]) -> str:
    return (
        project.get("latest_release_number")
        or project.get("latest_stable_release_number")
        or UNKNOWN_VERSION
    )


def project_license(project: dict[str, Any]) -> str | None:
    normalized = project.get("normalized_licenses") or []
    return (
        project.get("repository_license")
        or project.get("licenses")
        or (normalized[0] if normalized else None)
    )


def dependency_map(dependencies: dict[str, Any] | None) -> dict[str, str]:
    """Name -> requirement, falling back to the dependency's latest release."""
    result: dict[str, str] = {}
    for dep in (dependencies or {}).get("dependencies") or []:
        requirement = dep.get("requirements") or dep.get("latest")
        if dep.get("name") and requirement:
            result[dep["name"]] = requirement
    return result


class LibrariesIoTransformer(SourceTransformer):
    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        """Map a search page. A bare-list answer carries no total, so `has_more` is False."""
        projects = raw.get("projects") or []
        total = raw.get("total")
        if total is None:
            return SearchResult(
                packages=[self.transform_project(p) for p in projects],
                total=len(projects),
                has_more=False,
            )
        total = int(total)
        return SearchResult(
            packages=[self.transform_project(p) for p in projects],
            total=total,
            has_more=offset + len(projects) < total,
        )

    def transform_project(self, project: dict[str, Any]) -> PackageInfo:
        repository_url = project.get("repository_url")
        return PackageInfo(
            name=project.get("name", ""),
            version=latest_version(project),
            description=project.get("description"),
            keywords=project.get("keywords") or None,
            license=project_license(project),
            repository=PackageRepository(url=repository_url) if repository_url else None,
            homepage=project.get("homepage"),
            downloads=project.get("dependents_count"),
            deprecated=project.get("deprecation_reason") or None,
        )

    def transform_package_info(self, raw: Any) -> PackageInfo:
        return self.transform_project(raw.get("project") or {})

    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        project = raw.get("project") or {}
        dependencies = raw.get("dependencies")
        info = self.transform_project(project)
        info.version = (
            (dependencies or {}).get("version") or version or latest_version(project)
        )

        versions = self.transform_versions(raw)
        return PackageDetails(
            **info.model_dump(),
            versions=versions,
            time={v.version: v.published_at for v in versions if v.published_at} or None,
            dependencies=dependency_map(dependencies) or None,
        )

    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        """Map `versions`, newest first by publish date, then by version number.

        The latest stable release is tagged `latest`.
        """
        stable = (raw.get("project") or {}).get("latest_stable_release_number")
        entries = sorted(
            (v for v in raw.get("versions") or [] if v.get("number")),
            key=lambda v: (v.get("published_at") or "", version_key(v["number"])),
            reverse=True,
        )
        return [
            VersionInfo(
                version=v["number"],
                published_at=v.get("published_at"),
                tag="latest" if stable and v["number"] == stable else None,
            )
            for v in entries
        ]
