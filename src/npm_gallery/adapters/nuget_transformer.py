"""Transformer for NuGet V3 search items and registration indexes.

Raw shapes:
    search:       {"totalHits": N, "data": [item, ...]}
                  item keys: id, version, authors, owners, tags, totalDownloads, versions
    details:      {"item": search item, "registration": registration index or None}
    registration: {"items": [{"items": [{"catalogEntry": entry}]}]}
                  entry keys: version, published, dependencyGroups
"""

from __future__ import annotations

import re
from typing import Any

from npm_gallery.models import (
    NuGetDependency,
    NuGetDependencyGroup,
    PackageAuthor,
    PackageDetails,
    PackageInfo,
    PackagePublisher,
    PackageRepository,
    SearchResult,
    VersionInfo,
)
from npm_gallery.sources.base import SourceTransformer
from npm_gallery.utils import as_list, version_key

FRAMEWORK_PRODUCTS: dict[str, str] = {
    ".netframework": ".NET Framework",
    ".netstandard": ".NET Standard",
    ".netplatform": ".NET Platform",
    ".netcoreapp": ".NET Core",
    "net": ".NET",
    "netcoreapp": ".NET Core",
    "netstandard": ".NET Standard",
    "monoandroid": "MonoAndroid",
    "monomac": "MonoMac",
    "monotouch": "MonoTouch",
    "tizen": "Tizen",
    "uap": "Universal Windows Platform",
    "xamarin.ios": "Xamarin.iOS",
    "xamarin.mac": "Xamarin.Mac",
    "xamarin.tvos": "Xamarin.TVOS",
    "xamarin.watchos": "Xamarin.WatchOS",
}

_NET_FRAMEWORK_SHORT = re.compile(r"^net(4\d*)$", re.IGNORECASE)
_NET_MODERN = re.compile(r"^net(\d+\.\d+(?:-\w+)*)$", re.IGNORECASE)
_PRODUCT_VERSION = re.compile(r"^(.+?)(\d+(?:\.\d+)*)$")


def format_target_framework(tfm: str | None) -> str:
    """Human-readable target framework name.

    >>> format_target_framework("net472")
    '.NET Framework 4.7.2'
    >>> format_target_framework(".NETStandard2.0")
    '.NET Standard 2.0'
    >>> format_target_framework("")
    '(any)'
    """
    if not tfm or not tfm.strip():
        return "(any)"
    tfm = tfm.strip()

    short = _NET_FRAMEWORK_SHORT.match(tfm)
    if short:
        return f".NET Framework {'.'.join(short.group(1))}"
    modern = _NET_MODERN.match(tfm)
    if modern:
        return f".NET {modern.group(1)}"

    match = _PRODUCT_VERSION.match(tfm)
    prefix, version = (match.group(1), match.group(2)) if match else (tfm, "")
    product = FRAMEWORK_PRODUCTS.get(prefix.lower(), prefix)
    return f"{product} {version}" if version else product


def _leaves(registration: dict[str, Any] | None) -> list[dict[str, Any]]:
    if not registration:
        return []
    return [
        leaf
        for page in registration.get("items") or []
        for leaf in page.get("items") or []
        if isinstance(leaf.get("catalogEntry"), dict)
    ]


class NuGetTransformer(SourceTransformer):
    def transform_search_result(self, raw: Any, offset: int = 0) -> SearchResult:
        data = raw.get("data") or []
        total = int(raw.get("totalHits") or 0)
        return SearchResult(
            packages=[self.transform_search_item(item) for item in data],
            total=total,
            has_more=offset + len(data) < total,
        )

    def transform_search_item(self, item: dict[str, Any]) -> PackageInfo:
        authors = [a for a in as_list(item.get("authors")) if a]
        owners = [o for o in as_list(item.get("owners")) if o]
        tags = [t for t in as_list(item.get("tags")) if t]
        project_url = item.get("projectUrl") or None
        return PackageInfo(
            name=item.get("id", ""),
            version=item.get("version", ""),
            description=item.get("description") or item.get("summary"),
            keywords=tags or None,
            license=item.get("licenseExpression") or None,
            author=PackageAuthor(name=authors[0]) if authors else None,
            publisher=PackagePublisher(username=owners[0]) if owners else None,
            repository=PackageRepository(url=project_url) if project_url else None,
            homepage=project_url,
            downloads=item.get("totalDownloads"),
        )

    def transform_package_info(self, raw: Any) -> PackageInfo:
        return self.transform_search_item(raw)

    def transform_package_details(self, raw: Any, version: str | None = None) -> PackageDetails:
        """Merge a search item with its registration index.

        Dependency groups come from the catalog entry of `version` (or the
        item's version), falling back to the newest registration leaf.
        """
        item = raw.get("item") or {}
        registration = raw.get("registration")
        info = self.transform_search_item(item)

        leaves = _leaves(registration)
        if leaves:
            versions = [
                VersionInfo(
                    version=leaf["catalogEntry"].get("version", ""),
                    published_at=leaf["catalogEntry"].get("published"),
                )
                for leaf in leaves
                if leaf["catalogEntry"].get("version")
            ]
        else:
            versions = self.transform_versions(item.get("versions") or [])
        versions.sort(key=lambda v: version_key(v.version), reverse=True)

        wanted = (version or info.version).lower()
        matching = [
            candidate
            for candidate in leaves
            if str(candidate["catalogEntry"].get("version", "")).lower() == wanted
        ]
        leaf = matching[0] if matching else (leaves[-1] if leaves else None)
        groups = self._dependency_groups(leaf["catalogEntry"] if leaf else {})
        flat = {dep.id: dep.range for group in groups for dep in group.dependencies}

        if leaf is not None and leaf["catalogEntry"].get("version"):
            info.version = leaf["catalogEntry"]["version"]
        if leaf is not None and not info.license:
            info.license = leaf["catalogEntry"].get("licenseExpression") or None

        return PackageDetails(
            **info.model_dump(),
            versions=versions,
            dependencies=flat or None,
            nuget_dependency_groups=groups or None,
        )

    def _dependency_groups(self, entry: dict[str, Any]) -> list[NuGetDependencyGroup]:
        return [
            NuGetDependencyGroup(
                target_framework=format_target_framework(group.get("targetFramework")),
                dependencies=[
                    NuGetDependency(id=dep["id"], range=dep.get("range") or "*")
                    for dep in group.get("dependencies") or []
                    if dep.get("id")
                ],
            )
            for group in entry.get("dependencyGroups") or []
        ]

    def transform_versions(self, raw: Any) -> list[VersionInfo]:
        """Map the search item's `versions` list, highest version first."""
        versions = [VersionInfo(version=v["version"]) for v in raw or [] if v.get("version")]
        return sorted(versions, key=lambda v: version_key(v.version), reverse=True)
