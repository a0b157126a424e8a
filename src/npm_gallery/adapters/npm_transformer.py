"""Transformer for npm registry responses.

Raw shapes:
    search:    {"objects": [{"package": {...}, "score": {...}, "downloads": {...}}], "total": N}
    packument: {"name", "dist-tags", "versions": {ver: manifest}, "time", "readme", ...}
"""

from __future__ import annotations

from typing import Any

from npm_gallery.models import (
    BugTracker,
    PackageDetails,
    PackageInfo,
    PackageMaintainer,
    PackagePublisher,
    PackageRepository,
    PackageScore,
    ScoreDetail,
    SearchResult,
    VersionDist,
    VersionInfo,
)
from npm_gallery.sources.base import SourceTransformer
from npm_gallery.utils import (
    normalize_license,
    normalize_person,
    normalize_repository,
    sort_versions_by_date,
)


def transform_score(raw: Any) -> PackageScore | None:
    if not isinstance(raw, dict):
        return None
    detail = raw.get("detail") or {}
    return PackageScore(
        final=float(raw.get("final") or 0.0),
        detail=ScoreDetail(
            quality=float(detail.get("quality") or 0.0),
            popularity=float(detail.get("popularity") or 0.0),
            maintenance=float(detail.get("maintenance") or 0.0),
        ),
    )


def transform_publisher(raw: Any) -> PackagePublisher | None:
    if isinstance(raw, dict) and raw.get("username"):
        return PackagePublisher(username=raw["username"], email=raw.get("email"))
    return None


def _links_repository(links: dict[str, Any]) -> PackageRepository | None:
    url = links.get("repository")
    return PackageRepository(url=url) if url else None


def _bugs(raw: Any) -> BugTracker | None:
    if isinstance(raw, str) and raw:
        return BugTracker(url=raw)
    if isinstance(raw, dict) and (raw.get("url") or raw.get("email")):
        return BugTracker(url=raw.get("url"), email=raw.get("email"))
    return None


def _version_spec(raw: dict[str, Any], version: str | None) -> str:
    versions = raw.get("versions") or {}
    if version and version in versions:
        return version
    dist_tags = raw.get("dist-tags") or {}
    if version and version in dist_tags:
        return dist_tags[version]
    return dist_tags.get("latest") or next(iter(versions), "0.0.0")


class NpmTransformer(SourceTransformer):
    """Maps npm registry search pages and packuments."""

    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        objects = raw.get("objects") or []
        total = int(raw.get("total") or 0)
        packages = [self.transform_search_object(obj) for obj in objects]
        return SearchResult(
            packages=packages,
            total=total,
            has_more=offset + len(objects) < total,
        )

    def transform_search_object(self, obj: dict[str, Any]) -> PackageInfo:
        pkg = obj.get("package") or {}
        links = pkg.get("links") or {}
        downloads = obj.get("downloads") or {}
        return PackageInfo(
            name=pkg.get("name", ""),
            version=pkg.get("version", ""),
            description=pkg.get("description"),
            keywords=pkg.get("keywords"),
            license=normalize_license(pkg.get("license")),
            author=normalize_person(pkg.get("author")),
            publisher=transform_publisher(pkg.get("publisher")),
            repository=_links_repository(links),
            homepage=links.get("homepage"),
            score=transform_score(obj.get("score")),
            downloads=downloads.get("weekly"),
        )

    def transform_package_info(self, raw: Any) -> PackageInfo:
        version = _version_spec(raw, None)
        manifest = (raw.get("versions") or {}).get(version) or {}
        return PackageInfo(
            name=raw.get("name", ""),
            version=version,
            description=raw.get("description") or manifest.get("description"),
            keywords=raw.get("keywords") or manifest.get("keywords"),
            license=normalize_license(manifest.get("license") or raw.get("license")),
            author=normalize_person(raw.get("author") or manifest.get("author")),
            repository=normalize_repository(raw.get("repository")),
            homepage=raw.get("homepage"),
            deprecated=manifest.get("deprecated"),
        )

    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        selected = _version_spec(raw, version)
        manifest = (raw.get("versions") or {}).get(selected) or {}
        maintainers_raw = raw.get("maintainers") or []
        maintainers = [
            PackageMaintainer(name=m.get("name", ""), email=m.get("email"))
            for m in maintainers_raw
            if isinstance(m, dict) and m.get("name")
        ]
        return PackageDetails(
            name=raw.get("name", ""),
            version=selected,
            description=manifest.get("description") or raw.get("description"),
            keywords=manifest.get("keywords") or raw.get("keywords"),
            license=normalize_license(manifest.get("license") or raw.get("license")),
            author=normalize_person(manifest.get("author") or raw.get("author")),
            publisher=PackagePublisher(username=maintainers[0].name) if maintainers else None,
            repository=normalize_repository(manifest.get("repository") or raw.get("repository")),
            homepage=manifest.get("homepage") or raw.get("homepage"),
            deprecated=manifest.get("deprecated"),
            readme=raw.get("readme") or manifest.get("readme") or None,
            versions=self.transform_versions(raw),
            dependencies=manifest.get("dependencies"),
            dev_dependencies=manifest.get("devDependencies"),
            peer_dependencies=manifest.get("peerDependencies"),
            optional_dependencies=manifest.get("optionalDependencies"),
            maintainers=maintainers or None,
            time=raw.get("time"),
            dist_tags=raw.get("dist-tags"),
            bugs=_bugs(raw.get("bugs")),
        )

    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        dist_tags = raw.get("dist-tags") or {}
        tag_by_version = {v: tag for tag, v in reversed(list(dist_tags.items()))}
        times = raw.get("time") or {}

        versions = []
        for number, manifest in (raw.get("versions") or {}).items():
            dist = manifest.get("dist") if isinstance(manifest, dict) else None
            versions.append(
                VersionInfo(
                    version=number,
                    published_at=times.get(number),
                    deprecated=manifest.get("deprecated") if isinstance(manifest, dict) else None,
                    tag=tag_by_version.get(number),
                    dist=VersionDist(
                        shasum=dist.get("shasum"),
                        tarball=dist.get("tarball"),
                        unpacked_size=dist.get("unpackedSize"),
                    )
                    if isinstance(dist, dict)
                    else None,
                )
            )
        return sort_versions_by_date(versions)
