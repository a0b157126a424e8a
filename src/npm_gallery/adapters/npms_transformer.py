"""Transformer for npms.io responses.

npms.io returns search hits shaped like the npm registry's, plus analysis
documents (`collected.metadata`, `collected.npm`, `score`). It publishes no
version history, so `transform_versions` is always empty.
"""

from __future__ import annotations

from typing import Any

from npm_gallery.adapters.npm_transformer import transform_publisher, transform_score
from npm_gallery.models import (
    PackageDetails,
    PackageInfo,
    PackageMaintainer,
    PackageRepository,
    SearchResult,
    VersionInfo,
)
from npm_gallery.sources.base import SourceTransformer
from npm_gallery.utils import normalize_license, normalize_person, normalize_repository


def analysis_downloads(raw: dict[str, Any]) -> int | None:
    """Most recent download bucket count from an analysis document."""
    buckets = ((raw.get("collected") or {}).get("npm") or {}).get("downloads") or []
    if buckets and isinstance(buckets[0], dict):
        return buckets[0].get("count")
    return None


class NpmsTransformer(SourceTransformer):
    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        # /search returns {"total", "results"}; /search/suggestions a bare list
        results = raw if isinstance(raw, list) else raw.get("results") or []
        total = len(results) if isinstance(raw, list) else int(raw.get("total") or 0)
        return SearchResult(
            packages=[self.transform_hit(hit) for hit in results],
            total=total,
            has_more=offset + len(results) < total,
        )

    def transform_hit(self, hit: dict[str, Any]) -> PackageInfo:
        pkg = hit.get("package") or {}
        links = pkg.get("links") or {}
        return PackageInfo(
            name=pkg.get("name", ""),
            version=pkg.get("version", ""),
            description=pkg.get("description"),
            keywords=pkg.get("keywords"),
            author=normalize_person(pkg.get("author")),
            publisher=transform_publisher(pkg.get("publisher")),
            repository=(
                PackageRepository(url=links["repository"]) if links.get("repository") else None
            ),
            homepage=links.get("homepage"),
            score=transform_score(hit.get("score")),
        )

    def transform_package_info(self, raw: Any) -> PackageInfo:
        metadata = (raw.get("collected") or {}).get("metadata") or {}
        links = metadata.get("links") or {}
        return PackageInfo(
            name=metadata.get("name", ""),
            version=metadata.get("version", ""),
            description=metadata.get("description"),
            keywords=metadata.get("keywords"),
            license=normalize_license(metadata.get("license")),
            author=normalize_person(metadata.get("author")),
            publisher=transform_publisher(metadata.get("publisher")),
            repository=normalize_repository(metadata.get("repository")),
            homepage=links.get("homepage"),
            downloads=analysis_downloads(raw),
            score=transform_score(raw.get("score")),
            deprecated=metadata.get("deprecated"),
        )

    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        """Limited details: analysis documents carry no readme or version list."""
        info = self.transform_package_info(raw)
        metadata = (raw.get("collected") or {}).get("metadata") or {}
        maintainers = [
            PackageMaintainer(name=m["username"], email=m.get("email"))
            for m in metadata.get("maintainers") or []
            if isinstance(m, dict) and m.get("username")
        ]
        return PackageDetails(
            **info.model_dump(),
            readme=metadata.get("readme") or None,
            dependencies=metadata.get("dependencies"),
            dev_dependencies=metadata.get("devDependencies"),
            peer_dependencies=metadata.get("peerDependencies"),
            maintainers=maintainers or None,
        )

    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        return []
