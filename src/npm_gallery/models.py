"""Data models for NPM Gallery.

This module contains the pydantic models shared by every source adapter:
identifiers for ecosystems and sources, the unified package data model
that transformers produce, search/install/copy options, and the project
detection and source configuration records.

Fields are snake_case in Python and serialize to the camelCase names the
upstream registries and UI layers use (`model_dump(by_alias=True)`).
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from npm_gallery.constants import DEFAULT_SEARCH_SIZE


class GalleryModel(BaseModel):
    """Base model: camelCase aliases, populate by field name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# IDENTIFIERS
# =============================================================================


class ProjectType(str, Enum):
    """Ecosystem a workspace may belong to."""

    NPM = "npm"
    MAVEN = "maven"
    GO = "go"
    DOTNET = "dotnet"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return PROJECT_TYPE_DISPLAY_NAMES[self]

    @property
    def requires_copy(self) -> bool:
        """Whether packages are added by pasting a manifest snippet instead of a CLI."""
        return self in (ProjectType.MAVEN, ProjectType.DOTNET)


class SourceType(str, Enum):
    """Concrete registry backend."""

    NPM_REGISTRY = "npm-registry"
    NPMS_IO = "npms-io"
    SONATYPE = "sonatype"
    LIBRARIES_IO = "libraries-io"
    PKG_GO_DEV = "pkg-go-dev"
    NUGET = "nuget"

    @property
    def display_name(self) -> str:
        return SOURCE_TYPE_DISPLAY_NAMES[self]


PROJECT_TYPE_DISPLAY_NAMES: dict[ProjectType, str] = {
    ProjectType.NPM: "npm",
    ProjectType.MAVEN: "Maven",
    ProjectType.GO: "Go",
    ProjectType.DOTNET: ".NET",
    ProjectType.UNKNOWN: "Unknown",
}

SOURCE_TYPE_DISPLAY_NAMES: dict[SourceType, str] = {
    SourceType.NPM_REGISTRY: "npm Registry",
    SourceType.NPMS_IO: "npms.io",
    SourceType.SONATYPE: "Sonatype Maven Central",
    SourceType.LIBRARIES_IO: "Libraries.io",
    SourceType.PKG_GO_DEV: "pkg.go.dev",
    SourceType.NUGET: "NuGet",
}

Severity = Literal["critical", "high", "moderate", "low", "info"]
PackageManager = Literal["npm", "yarn", "pnpm"]
DependencyType = Literal[
    "dependencies", "devDependencies", "peerDependencies", "optionalDependencies"
]
MavenScope = Literal["compile", "test", "provided", "runtime", "system"]


# =============================================================================
# PACKAGE METADATA
# =============================================================================


class PackageAuthor(GalleryModel):
    name: str | None = None
    email: str | None = None
    url: str | None = None


class PackagePublisher(GalleryModel):
    username: str
    email: str | None = None


class PackageMaintainer(GalleryModel):
    name: str
    email: str | None = None


class PackageRepository(GalleryModel):
    type: str | None = None
    url: str
    directory: str | None = None


class ScoreDetail(GalleryModel):
    quality: float = 0.0
    popularity: float = 0.0
    maintenance: float = 0.0


class PackageScore(GalleryModel):
    """Composite quality score as published by the npm search endpoints."""

    final: float = 0.0
    detail: ScoreDetail = Field(default_factory=ScoreDetail)


class BundleSize(GalleryModel):
    """Minified and gzipped bundle size of an npm package."""

    size: int = Field(default=0, description="Minified size in bytes")
    gzip: int = Field(default=0, description="Gzipped size in bytes")
    dependency_count: int | None = None
    has_js_module: bool | None = Field(default=None, alias="hasJSModule")
    has_side_effects: bool | None = None


class CvssScore(GalleryModel):
    score: float
    vector_string: str | None = None


class Vulnerability(GalleryModel):
    """One advisory affecting a package version."""

    id: int = 0
    title: str
    severity: Severity = "moderate"
    url: str | None = None
    vulnerable_versions: str | None = None
    patched_versions: str | None = None
    recommendation: str | None = None
    cwe: list[str] | None = None
    cvss: CvssScore | None = None
    published: str | None = None
    details: str | None = None


class VulnerabilitySummary(GalleryModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    info: int = 0

    @classmethod
    def from_vulnerabilities(cls, vulnerabilities: list[Vulnerability]) -> VulnerabilitySummary:
        summary = cls(total=len(vulnerabilities))
        for vuln in vulnerabilities:
            setattr(summary, vuln.severity, getattr(summary, vuln.severity) + 1)
        return summary


class SecurityInfo(GalleryModel):
    vulnerabilities: list[Vulnerability] = Field(default_factory=list)
    summary: VulnerabilitySummary = Field(default_factory=VulnerabilitySummary)

    @classmethod
    def empty(cls) -> SecurityInfo:
        return cls()


class DependentPackageRef(GalleryModel):
    system: str
    name: str


class DependentSampleItem(GalleryModel):
    package: DependentPackageRef
    version: str


class DependentsInfo(GalleryModel):
    """Reverse-dependency counts from the deps.dev graph."""

    package: DependentPackageRef
    version: str
    total_count: int = 0
    direct_count: int = 0
    indirect_count: int = 0
    direct_sample: list[DependentSampleItem] = Field(default_factory=list)
    indirect_sample: list[DependentSampleItem] = Field(default_factory=list)
    web_url: str | None = None


class RequirementItem(GalleryModel):
    name: str
    requirement: str | None = None
    version: str | None = None
    scope: str | None = None
    optional: bool | None = None
    classifier: str | None = None
    type: str | None = None
    exclusions: list[str] | None = None


class RequirementSection(GalleryModel):
    id: str
    title: str
    items: list[RequirementItem] = Field(default_factory=list)


class RequirementsInfo(GalleryModel):
    system: str
    package: str
    version: str
    sections: list[RequirementSection] = Field(default_factory=list)
    web_url: str | None = None


class VersionDist(GalleryModel):
    shasum: str | None = None
    tarball: str | None = None
    unpacked_size: int | None = None


class VersionInfo(GalleryModel):
    """One published version of a package."""

    version: str
    published_at: str | None = None
    deprecated: str | None = None
    tag: str | None = Field(default=None, description="Dist-tag pointing at this version")
    dist: VersionDist | None = None


class PackageInfo(GalleryModel):
    """Summary record shown in search results and hovers.

    Attributes:
        name: Registry name (scoped npm names, Maven `groupId:artifactId`, NuGet id).
        version: Latest (or requested) version.
        exact_match: True when surfaced as the exact hit of an exact-name search.
        downloads: Weekly downloads for npm, total downloads for NuGet.
    """

    name: str
    version: str = ""
    description: str | None = None
    exact_match: bool | None = None
    keywords: list[str] | None = None
    license: str | None = None
    author: PackageAuthor | None = None
    publisher: PackagePublisher | None = None
    repository: PackageRepository | None = None
    homepage: str | None = None
    downloads: int | None = None
    score: PackageScore | None = None
    bundle_size: BundleSize | None = None
    deprecated: str | None = None


class NuGetDependency(GalleryModel):
    id: str
    range: str = "*"


class NuGetDependencyGroup(GalleryModel):
    target_framework: str
    dependencies: list[NuGetDependency] = Field(default_factory=list)


class BugTracker(GalleryModel):
    url: str | None = None
    email: str | None = None


class PackageDetails(PackageInfo):
    """Full package view: PackageInfo plus readme, versions and dependency maps."""

    readme: str | None = None
    versions: list[VersionInfo] = Field(default_factory=list)
    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = None
    peer_dependencies: dict[str, str] | None = None
    optional_dependencies: dict[str, str] | None = None
    dependents: DependentsInfo | None = None
    requirements: RequirementsInfo | None = None
    nuget_dependency_groups: list[NuGetDependencyGroup] | None = None
    maintainers: list[PackageMaintainer] | None = None
    time: dict[str, str] | None = None
    dist_tags: dict[str, str] | None = None
    bugs: BugTracker | None = None
    security: SecurityInfo | None = None


# =============================================================================
# SEARCH
# =============================================================================

_SORT_LABELS: dict[str, str] = {
    "relevance": "Relevance",
    "popularity": "Popularity",
    "quality": "Quality",
    "maintenance": "Maintenance",
    "name": "Name",
    "score": "Score",
    "timestamp": "Timestamp",
    "groupId": "Group ID",
    "artifactId": "Artifact ID",
    "latest_release_published_at": "Published Date",
    "rank": "Rank",
    "stars": "Stars",
}

_FILTER_LABELS: dict[str, str] = {
    "author": "Author",
    "maintainer": "Maintainer",
    "scope": "Scope",
    "keywords": "Keywords",
    "groupId": "Group ID",
    "artifactId": "Artifact ID",
    "version": "Version",
    "tags": "Tags",
    "packageType": "Package type",
    "languages": "Languages",
    "licenses": "Licenses",
    "platforms": "Platforms",
}

_FILTER_PLACEHOLDERS: dict[str, str] = {
    "author": "author username",
    "maintainer": "maintainer username",
    "scope": "scope (e.g., @foo/bar)",
    "keywords": "keywords: Use + for AND, , for OR, - to exclude",
    "groupId": "groupId (e.g., com.google.inject)",
    "artifactId": "artifactId (e.g., guice)",
    "version": "version (e.g., 1.0.0)",
    "tags": "tags (comma-separated)",
    "packageType": "e.g. Dependency, DotnetTool",
    "languages": "languages (comma-separated, e.g., Java,JavaScript)",
    "licenses": "licenses (comma-separated, e.g., MIT,Apache-2.0)",
    "platforms": "platforms (comma-separated, e.g., Maven,NPM)",
}


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


class SortOption(GalleryModel):
    value: str
    label: str

    @classmethod
    def create(cls, value: str, label: str | None = None) -> SortOption:
        return cls(value=value, label=label or _SORT_LABELS.get(value, _capitalize(value)))


class FilterOption(GalleryModel):
    value: str
    label: str
    placeholder: str | None = None

    @classmethod
    def create(
        cls,
        value: str,
        label: str | None = None,
        placeholder: str | None = None,
    ) -> FilterOption:
        return cls(
            value=value,
            label=label or _FILTER_LABELS.get(value, _capitalize(value)),
            placeholder=placeholder or _FILTER_PLACEHOLDERS.get(value, f"Enter {value}"),
        )


class SearchFilters(GalleryModel):
    scope: str | None = None
    author: str | None = None
    keywords: list[str] | None = None
    min_downloads: int | None = None
    max_bundle_size: int | None = None
    exclude_deprecated: bool | None = None
    license: list[str] | None = None


class SearchOptions(GalleryModel):
    """Parameters for a paged package search.

    Attributes:
        query: Free-text query. Blank means "no results".
        exact_name: Name to surface first (flagged `exact_match`) if it exists.
        from_: Offset of the first result (serialized as `from`).
        size: Page size.
        sort_by: Sort option value (e.g. "relevance", "name").
        filters: Structured filters, where the source supports them.
    """

    query: str = ""
    exact_name: str | None = None
    from_: int = Field(default=0, ge=0, alias="from")
    size: int = Field(default=DEFAULT_SEARCH_SIZE, ge=1)
    sort_by: str = "relevance"
    filters: SearchFilters | None = None


class SearchResult(GalleryModel):
    packages: list[PackageInfo] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False

    @classmethod
    def empty(cls) -> SearchResult:
        return cls()


# =============================================================================
# INSTALL / COPY
# =============================================================================


class InstallOptions(GalleryModel):
    version: str | None = None
    type: DependencyType = "dependencies"
    package_manager: PackageManager | None = Field(
        default=None, description="Detected from lock files when unset"
    )
    exact: bool = False


class CopyOptions(GalleryModel):
    """Options for generating a manifest snippet.

    `format` is one of xml, gradle, sbt, grape, other for Maven, or one of
    packagereference, dotnet-cli, cpm, cpm-project, paket, paket-deps, cake,
    cake-tool, pmc, script, file-based for NuGet.
    """

    version: str | None = None
    scope: MavenScope | None = None
    format: str | None = None
    build_tool: str | None = None


# =============================================================================
# PROJECT DETECTION
# =============================================================================


class ProjectInfo(GalleryModel):
    """One marker file found in one workspace folder."""

    type: ProjectType
    config_file: str = Field(..., description="Path of the marker file")
    workspace_path: str = Field(..., description="Workspace root that contains it")


class DetectedProjects(GalleryModel):
    """Snapshot of one detection pass."""

    projects: list[ProjectInfo] = Field(default_factory=list)
    detected_types: list[ProjectType] = Field(default_factory=list)
    primary: ProjectType = ProjectType.UNKNOWN


# =============================================================================
# SOURCE CONFIGURATION
# =============================================================================


class SourceConfig(GalleryModel):
    """Sources and search options for one project type.

    `[primary, *fallbacks]` is the full ordered list of sources to try.
    """

    primary: SourceType
    fallbacks: list[SourceType] = Field(default_factory=list)
    sort_options: list[str] = Field(default_factory=list)
    filters: list[str] = Field(default_factory=list)


class SourceConfigOverride(GalleryModel):
    """Partial SourceConfig; unset fields keep the current value."""

    primary: SourceType | None = None
    fallbacks: list[SourceType] | None = None
    sort_options: list[str] | None = None
    filters: list[str] | None = None
