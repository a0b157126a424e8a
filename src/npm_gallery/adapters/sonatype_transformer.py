"""Transformer for Maven Central (Sonatype) search documents and POMs.

Raw shapes:
    search:   {"response": {"numFound": N, "docs": [doc, ...]}}
              doc keys: g, a, v or latestVersion, timestamp, tags
    details:  {"artifact": doc, "versions": [gav docs], "pom": parse_pom(...) or None}

Packages are named by their `groupId:artifactId` coordinate.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from npm_gallery.models import (
    PackageAuthor,
    PackageDetails,
    PackageInfo,
    PackageMaintainer,
    PackageRepository,
    SearchResult,
    VersionInfo,
)
from npm_gallery.sources.base import SourceTransformer
from npm_gallery.utils import version_key

# Maven scope -> PackageDetails dependency map
SCOPE_FIELDS: dict[str, str] = {
    "test": "dev_dependencies",
    "provided": "peer_dependencies",
}


def coordinate(doc: dict[str, Any]) -> str:
    return f"{doc.get('g', '')}:{doc.get('a', '')}"


def doc_version(doc: dict[str, Any]) -> str:
    return doc.get("v") or doc.get("latestVersion") or ""


def timestamp_to_iso(value: Any) -> str | None:
    """Millisecond epoch timestamp to an ISO-8601 UTC string."""
    if not isinstance(value, (int, float)) or value <= 0:
        return None
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


def split_dependencies(dependencies: list[dict[str, Any]]) -> dict[str, dict[str, str]]:
    """Group POM dependencies into the four npm-style dependency maps.

    Optional dependencies go to `optional_dependencies` regardless of scope;
    compile, runtime and system scopes all land in `dependencies`.
    """
    maps: dict[str, dict[str, str]] = {}
    for dep in dependencies:
        if not dep.get("group_id") or not dep.get("artifact_id"):
            continue
        key = f"{dep['group_id']}:{dep['artifact_id']}"
        if dep.get("optional"):
            field = "optional_dependencies"
        else:
            field = SCOPE_FIELDS.get(dep.get("scope") or "compile", "dependencies")
        maps.setdefault(field, {})[key] = dep.get("version") or ""
    return maps


class SonatypeTransformer(SourceTransformer):
    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        response = raw.get("response") or {}
        docs = response.get("docs") or []
        total = int(response.get("numFound") or 0)
        return SearchResult(
            packages=[self.transform_doc(doc) for doc in docs],
            total=total,
            has_more=offset + len(docs) < total,
        )

    def transform_doc(self, doc: dict[str, Any]) -> PackageInfo:
        return PackageInfo(
            name=coordinate(doc),
            version=doc_version(doc),
            keywords=doc.get("tags") or None,
        )

    def transform_package_info(self, raw: Any) -> PackageInfo:
        """Map `{"artifact": doc, "pom": pom}`; the POM supplies descriptive fields."""
        artifact = raw.get("artifact") or {}
        pom = raw.get("pom") or {}
        developers = pom.get("developers") or []
        first = developers[0] if developers else None
        licenses = pom.get("licenses") or []
        url = pom.get("url")
        return PackageInfo(
            name=coordinate(artifact),
            version=doc_version(artifact),
            description=pom.get("description") or pom.get("name"),
            keywords=artifact.get("tags") or None,
            license=licenses[0].get("name") if licenses else None,
            author=PackageAuthor(
                name=first.get("name"), email=first.get("email"), url=first.get("url")
            )
            if first
            else None,
            repository=PackageRepository(url=url) if url else None,
            homepage=url,
        )

    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        info = self.transform_package_info(raw)
        pom = raw.get("pom") or {}
        maintainers = [
            PackageMaintainer(name=dev["name"], email=dev.get("email"))
            for dev in pom.get("developers") or []
            if dev.get("name")
        ]
        versions = self.transform_versions(raw.get("versions") or [])
        return PackageDetails(
            **info.model_dump(),
            versions=versions,
            time={v.version: v.published_at for v in versions if v.published_at} or None,
            maintainers=maintainers or None,
            **split_dependencies(pom.get("dependencies") or []),
        )

    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        """Map `gav` documents, newest first by timestamp, then by version."""
        docs = raw if isinstance(raw, list) else [raw]
        docs = sorted(
            docs,
            key=lambda doc: (doc.get("timestamp") or 0, version_key(doc_version(doc))),
            reverse=True,
        )
        return [
            VersionInfo(
                version=doc_version(doc), published_at=timestamp_to_iso(doc.get("timestamp"))
            )
            for doc in docs
        ]
