"""Maven Central source adapter (search.maven.org).

Packages are addressed by `groupId:artifactId`. Maven has no installer CLI,
so this adapter offers manifest snippets (Maven XML, Gradle, SBT, Grape)
through COPY instead of INSTALLATION.

Search accepts free text plus `groupId:`, `artifactId:` and `tags:`
qualifiers, or a bare `group:artifact[:version]` coordinate:

    guava                          -> guava
    guava groupId:com.google.guava -> guava AND g:com.google.guava
    com.google.guava:guava         -> g:com.google.guava AND a:guava
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from npm_gallery.adapters.sonatype_transformer import SonatypeTransformer, doc_version
from npm_gallery.clients.deps_dev import DepsDevClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.clients.sonatype import SonatypeClient
from npm_gallery.exceptions import InvalidCoordinateError, PackageNotFoundError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    CopyOptions,
    FilterOption,
    PackageDetails,
    PackageInfo,
    ProjectType,
    SearchOptions,
    SearchResult,
    SecurityInfo,
    SortOption,
    SourceType,
    VersionInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability
from npm_gallery.utils import sort_packages

logger = get_logger(__name__)

QUALIFIER_PATTERN = re.compile(r"\b(groupId|artifactId|tags):(\S+)")
QUALIFIER_FIELDS = {"groupId": "g", "artifactId": "a", "tags": "tags"}

# Sort option value -> Solr sort clause; absent means upstream relevance
SOLR_SORTS: dict[str, str] = {
    "name": "a asc",
    "popularity": "versionCount desc",
    "score": "score desc",
    "timestamp": "timestamp desc",
    "groupId": "g asc",
    "artifactId": "a asc",
}

GRADLE_CONFIGURATIONS: dict[str, str] = {
    "compile": "implementation",
    "runtime": "runtimeOnly",
    "test": "testImplementation",
    "provided": "compileOnly",
}

SBT_SCOPES: dict[str, str] = {"test": "Test", "provided": "Provided"}


def parse_coordinate(name: str) -> tuple[str, str, str | None] | None:
    """Split `group:artifact[:version]`; None when either part is missing."""
    parts = name.strip().split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    version = parts[2] if len(parts) > 2 and parts[2] else None
    return parts[0], parts[1], version


def build_solr_query(query: str) -> str:
    """Translate the user query into Solr syntax (see module docstring)."""
    qualifiers = QUALIFIER_PATTERN.findall(query)
    base = re.sub(r"\s+", " ", QUALIFIER_PATTERN.sub("", query)).strip()

    if not qualifiers and " " not in query.strip():
        parsed = parse_coordinate(query)
        if parsed is not None:
            group_id, artifact_id, version = parsed
            clauses = [f"g:{group_id}", f"a:{artifact_id}"]
            if version:
                clauses.append(f"v:{version}")
            return " AND ".join(clauses)

    clauses = [base] if base else []
    clauses.extend(f"{QUALIFIER_FIELDS[field]}:{value}" for field, value in qualifiers)
    return " AND ".join(clauses)


# =============================================================================
# SNIPPETS
# =============================================================================


def maven_snippet(group_id: str, artifact_id: str, version: str, scope: str) -> str:
    lines = [
        "    <dependency>",
        f"        <groupId>{group_id}</groupId>",
        f"        <artifactId>{artifact_id}</artifactId>",
        f"        <version>{version}</version>",
    ]
    if scope != "compile":
        lines.append(f"        <scope>{scope}</scope>")
    lines.append("    </dependency>")
    return "\n".join(lines)


def gradle_snippet(group_id: str, artifact_id: str, version: str, scope: str) -> str:
    configuration = GRADLE_CONFIGURATIONS.get(scope, "implementation")
    return f"{configuration} '{group_id}:{artifact_id}:{version}'"


def sbt_snippet(group_id: str, artifact_id: str, version: str, scope: str) -> str:
    snippet = f'"{group_id}" % "{artifact_id}" % "{version}"'
    if scope in SBT_SCOPES:
        snippet += f" % {SBT_SCOPES[scope]}"
    return snippet


def grape_snippet(group_id: str, artifact_id: str, version: str, scope: str) -> str:
    snippet = f"@Grab(group='{group_id}', module='{artifact_id}', version='{version}')"
    if scope not in ("compile", "runtime"):
        snippet += f" // scope: {scope}"
    return snippet


SNIPPET_BUILDERS = {
    "xml": maven_snippet,
    "other": maven_snippet,
    "gradle": gradle_snippet,
    "sbt": sbt_snippet,
    "grape": grape_snippet,
}


class SonatypeSourceAdapter(SourceAdapter):
    """Adapter over Maven Central's Solr search and POM downloads."""

    source_type = SourceType.SONATYPE
    display_name = "Sonatype Maven Central"
    project_type = ProjectType.MAVEN
    supported_sort_options = [SortOption.create("relevance"), SortOption.create("popularity")]
    supported_filters = [
        FilterOption.create("groupId"),
        FilterOption.create("artifactId"),
        FilterOption.create("tags"),
    ]

    def __init__(
        self,
        client: SonatypeClient,
        *,
        osv: OsvClient | None = None,
        deps_dev: DepsDevClient | None = None,
    ) -> None:
        super().__init__(deps_dev)
        self._client = client
        self._osv = osv
        self._transformer = SonatypeTransformer()

    def declared_capabilities(self) -> Iterable[Capability]:
        capabilities = {Capability.COPY, Capability.SUGGESTIONS, Capability.DEPENDENCIES}
        if self._osv is not None:
            capabilities.add(Capability.SECURITY)
        if self._deps_dev is not None:
            capabilities |= {Capability.DEPENDENTS, Capability.REQUIREMENTS}
        return capabilities

    def get_ecosystem(self) -> str:
        return "maven"

    def _require_coordinate(self, name: str) -> tuple[str, str, str | None]:
        parsed = parse_coordinate(name)
        if parsed is None:
            raise InvalidCoordinateError(
                f"Invalid Maven coordinate: {name}. Expected format: groupId:artifactId",
                self.source_type.value,
            )
        return parsed

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    async def search(self, options: SearchOptions) -> SearchResult:
        solr_query = build_solr_query(options.query or options.exact_name or "")
        if not solr_query:
            return SearchResult.empty()

        raw = await self._client.search(
            solr_query,
            start=options.from_,
            rows=options.size,
            sort=SOLR_SORTS.get(options.sort_by),
        )
        result = self._transformer.transform_search_result(raw, offset=options.from_)

        if options.exact_name:
            result = await self._surface_exact(result, options.exact_name)
        if options.sort_by == "name":
            result.packages = sort_packages(
                result.packages, key=lambda p: p.name.rpartition(":")[2].lower()
            )
        return result

    async def get_package_info(self, name: str) -> PackageInfo:
        group_id, artifact_id, _ = self._require_coordinate(name)
        artifact = await self._client.get_artifact(group_id, artifact_id)
        if artifact is None:
            raise PackageNotFoundError(name, self.source_type.value)
        pom = await self._client.get_pom(group_id, artifact_id, doc_version(artifact))
        return self._transformer.transform_package_info({"artifact": artifact, "pom": pom})

    async def get_package_details(self, name: str, version: str | None = None) -> PackageDetails:
        group_id, artifact_id, _ = self._require_coordinate(name)
        versions = await self._client.get_versions(group_id, artifact_id)

        artifact = next((doc for doc in versions if version and doc.get("v") == version), None)
        if artifact is None:
            artifact = await self._client.get_artifact(group_id, artifact_id)
        if artifact is None:
            raise PackageNotFoundError(name, self.source_type.value)

        selected = doc_version(artifact)
        pom = await self._client.get_pom(group_id, artifact_id, selected)
        details = self._transformer.transform_package_details(
            {"artifact": artifact, "versions": versions, "pom": pom}
        )
        if self.supports_capability(Capability.SECURITY) and selected:
            details.security = await self.get_security_info(name, selected)
        return details

    async def get_versions(self, name: str) -> list[VersionInfo]:
        group_id, artifact_id, _ = self._require_coordinate(name)
        docs = await self._client.get_versions(group_id, artifact_id)
        return self._transformer.transform_versions(docs)

    # -------------------------------------------------------------------------
    # Optional operations
    # -------------------------------------------------------------------------

    def get_copy_snippet(self, name: str, options: CopyOptions) -> str:
        """Dependency declaration for the requested build format.

        Unknown formats produce the Maven XML snippet.
        """
        self.require_capability(Capability.COPY)
        group_id, artifact_id, _ = self._require_coordinate(name)
        builder = SNIPPET_BUILDERS.get(options.format or "xml", maven_snippet)
        version = options.version or "LATEST"
        return builder(group_id, artifact_id, version, options.scope or "compile")

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        osv = self._client_for(Capability.SECURITY, self._osv)
        return await osv.query(name, version, self.get_ecosystem())

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None]:
        osv = self._client_for(Capability.SECURITY, self._osv)
        return dict(await osv.query_bulk(packages, self.get_ecosystem()))
