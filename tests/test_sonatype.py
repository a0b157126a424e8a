"""Tests for the Maven Central (Sonatype) adapter."""

from __future__ import annotations

import re

import pytest
from pytest_httpx import HTTPXMock

from npm_gallery.adapters.sonatype import (
    SonatypeSourceAdapter,
    build_solr_query,
    parse_coordinate,
)
from npm_gallery.adapters.sonatype_transformer import (
    SonatypeTransformer,
    split_dependencies,
    timestamp_to_iso,
)
from npm_gallery.clients.osv import OsvClient
from npm_gallery.clients.sonatype import SonatypeClient, parse_pom
from npm_gallery.exceptions import (
    CapabilityNotSupportedError,
    InvalidCoordinateError,
    PackageNotFoundError,
)
from npm_gallery.models import CopyOptions, SearchOptions
from npm_gallery.sources.capabilities import Capability

SEARCH_URL = re.compile(r"https://search\.maven\.org/solrsearch/select\?.*")
POM_URL = re.compile(r"https://search\.maven\.org/remotecontent\?filepath=.*")

SAMPLE_POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <parent>
    <groupId>com.google.guava</groupId>
    <artifactId>guava-parent</artifactId>
    <version>33.0.0-jre</version>
  </parent>
  <artifactId>guava</artifactId>
  <name>Guava: Google Core Libraries for Java</name>
  <description>Guava is a suite of core and expanded libraries.</description>
  <url>https://github.com/google/guava</url>
  <properties>
    <checker.version>3.41.0</checker.version>
  </properties>
  <licenses>
    <license>
      <name>Apache License, Version 2.0</name>
      <url>http://www.apache.org/licenses/LICENSE-2.0.txt</url>
    </license>
  </licenses>
  <developers>
    <developer>
      <name>Kevin Bourrillion</name>
      <email>kevinb@google.com</email>
    </developer>
  </developers>
  <dependencies>
    <dependency>
      <groupId>com.google.guava</groupId>
      <artifactId>failureaccess</artifactId>
      <version>1.0.2</version>
    </dependency>
    <dependency>
      <groupId>org.checkerframework</groupId>
      <artifactId>checker-qual</artifactId>
      <version>${checker.version}</version>
    </dependency>
    <dependency>
      <groupId>${project.groupId}</groupId>
      <artifactId>guava-testlib</artifactId>
      <version>${project.version}</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>com.google.code.findbugs</groupId>
      <artifactId>jsr305</artifactId>
      <version>3.0.2</version>
      <scope>provided</scope>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""

GA_DOC = {
    "g": "com.google.guava",
    "a": "guava",
    "latestVersion": "33.0.0-jre",
    "timestamp": 1703000000000,
    "tags": ["google", "collections"],
}

GAV_DOCS = [
    {"g": "com.google.guava", "a": "guava", "v": "32.1.3-jre", "timestamp": 1696000000000},
    {"g": "com.google.guava", "a": "guava", "v": "33.0.0-jre", "timestamp": 1703000000000},
]


def _solr(docs: list[dict], total: int | None = None) -> dict:
    return {"response": {"numFound": len(docs) if total is None else total, "docs": docs}}


@pytest.fixture
def adapter() -> SonatypeSourceAdapter:
    return SonatypeSourceAdapter(SonatypeClient())


class TestQueryTranslation:
    """Tests for coordinate parsing and Solr query building."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("com.google.guava:guava", ("com.google.guava", "guava", None)),
            ("junit:junit:4.13.2", ("junit", "junit", "4.13.2")),
            ("guava", None),
            (":guava", None),
            ("com.google.guava:", None),
        ],
    )
    def test_parse_coordinate(self, name: str, expected) -> None:
        assert parse_coordinate(name) == expected

    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("guava", "guava"),
            ("guava groupId:com.google.guava", "guava AND g:com.google.guava"),
            ("com.google.guava:guava", "g:com.google.guava AND a:guava"),
            ("junit:junit:4.13.2", "g:junit AND a:junit AND v:4.13.2"),
            ("tags:json artifactId:jackson", "tags:json AND a:jackson"),
            ("   ", ""),
        ],
    )
    def test_build_solr_query(self, query: str, expected: str) -> None:
        assert build_solr_query(query) == expected


class TestPomParsing:
    """Tests for parse_pom."""

    def test_fields_and_inherited_coordinates(self) -> None:
        pom = parse_pom(SAMPLE_POM)

        assert pom is not None
        assert pom["group_id"] == "com.google.guava"
        assert pom["version"] == "33.0.0-jre"
        assert pom["licenses"][0]["name"] == "Apache License, Version 2.0"
        assert pom["developers"][0]["email"] == "kevinb@google.com"

    def test_property_references_resolved(self) -> None:
        pom = parse_pom(SAMPLE_POM)

        assert pom is not None
        deps = {d["artifact_id"]: d for d in pom["dependencies"]}
        assert deps["checker-qual"]["version"] == "3.41.0"
        assert deps["guava-testlib"]["group_id"] == "com.google.guava"
        assert deps["guava-testlib"]["version"] == "33.0.0-jre"
        assert deps["failureaccess"]["scope"] == "compile"
        assert deps["jsr305"]["optional"] is True

    def test_malformed_xml(self) -> None:
        assert parse_pom("<project><unclosed></project>") is None


class TestSonatypeTransformer:
    """Tests for SonatypeTransformer."""

    def test_search(self) -> None:
        result = SonatypeTransformer().transform_search_result(_solr([GA_DOC], total=40))

        package = result.packages[0]
        assert package.name == "com.google.guava:guava"
        assert package.version == "33.0.0-jre"
        assert package.keywords == ["google", "collections"]
        assert result.has_more is True

    def test_split_dependencies_by_scope(self) -> None:
        pom = parse_pom(SAMPLE_POM)
        assert pom is not None

        maps = split_dependencies(pom["dependencies"])

        assert maps["dependencies"] == {
            "com.google.guava:failureaccess": "1.0.2",
            "org.checkerframework:checker-qual": "3.41.0",
        }
        assert maps["dev_dependencies"] == {"com.google.guava:guava-testlib": "33.0.0-jre"}
        assert maps["optional_dependencies"] == {"com.google.code.findbugs:jsr305": "3.0.2"}
        assert "peer_dependencies" not in maps

    def test_versions_newest_first(self) -> None:
        versions = SonatypeTransformer().transform_versions(GAV_DOCS)

        assert [v.version for v in versions] == ["33.0.0-jre", "32.1.3-jre"]
        assert versions[0].published_at is not None
        assert versions[0].published_at.endswith("Z")

    def test_timestamp_to_iso(self) -> None:
        assert timestamp_to_iso(0) is None
        assert timestamp_to_iso("soon") is None
        assert timestamp_to_iso(1700000000000) == "2023-11-14T22:13:20Z"

    def test_details_without_pom(self) -> None:
        details = SonatypeTransformer().transform_package_details(
            {"artifact": GA_DOC, "versions": GAV_DOCS, "pom": None}
        )

        assert details.description is None
        assert details.dependencies is None
        assert details.time is not None and "33.0.0-jre" in details.time


class TestSonatypeAdapter:
    """Tests for SonatypeSourceAdapter."""

    def test_capabilities(self, adapter: SonatypeSourceAdapter) -> None:
        assert adapter.supports_capability(Capability.COPY)
        assert not adapter.supports_capability(Capability.INSTALLATION)
        assert not adapter.supports_capability(Capability.SECURITY)

    async def test_security_client_removed_after_declaration(self) -> None:
        adapter = SonatypeSourceAdapter(SonatypeClient(), osv=OsvClient())
        assert adapter.supports_capability(Capability.SECURITY)
        adapter._osv = None

        with pytest.raises(CapabilityNotSupportedError, match="client not configured"):
            await adapter.get_security_info("com.google.guava:guava", "33.0.0-jre")
        with pytest.raises(CapabilityNotSupportedError, match="client not configured"):
            await adapter.get_security_info_bulk([("com.google.guava:guava", "33.0.0-jre")])

    async def test_search_translates_query(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, json=_solr([GA_DOC]))

        result = await adapter.search(
            SearchOptions(query="com.google.guava:guava", sort_by="popularity", size=5)
        )

        assert result.packages[0].name == "com.google.guava:guava"
        params = httpx_mock.get_requests()[0].url.params
        assert params["q"] == "g:com.google.guava AND a:guava"
        assert params["sort"] == "versionCount desc"
        assert params["rows"] == "5"
        assert params["core"] == "ga"

    async def test_blank_search(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        result = await adapter.search(SearchOptions(query=""))

        assert result.packages == []
        assert httpx_mock.get_requests() == []

    async def test_search_sorted_by_artifact_name(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        docs = [
            {"g": "org.a", "a": "zeta", "latestVersion": "1"},
            {"g": "org.z", "a": "alpha", "latestVersion": "1"},
        ]
        httpx_mock.add_response(url=SEARCH_URL, json=_solr(docs))

        result = await adapter.search(SearchOptions(query="lib", sort_by="name"))

        assert [p.name for p in result.packages] == ["org.z:alpha", "org.a:zeta"]

    async def test_package_info_reads_pom(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, json=_solr([GA_DOC]))
        httpx_mock.add_response(url=POM_URL, text=SAMPLE_POM)

        info = await adapter.get_package_info("com.google.guava:guava")

        assert info.version == "33.0.0-jre"
        assert info.license == "Apache License, Version 2.0"
        assert info.homepage == "https://github.com/google/guava"
        pom_request = httpx_mock.get_requests()[1]
        assert pom_request.url.params["filepath"] == (
            "com/google/guava/guava/33.0.0-jre/guava-33.0.0-jre.pom"
        )

    async def test_package_info_missing_artifact(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, json=_solr([]))

        with pytest.raises(PackageNotFoundError):
            await adapter.get_package_info("org.nope:nope")

    async def test_invalid_coordinate_before_io(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        with pytest.raises(InvalidCoordinateError, match="groupId:artifactId"):
            await adapter.get_versions("guava")

        assert httpx_mock.get_requests() == []

    async def test_details_for_requested_version(
        self, adapter: SonatypeSourceAdapter, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(url=SEARCH_URL, json=_solr(GAV_DOCS))
        httpx_mock.add_response(url=POM_URL, status_code=404)

        details = await adapter.get_package_details("com.google.guava:guava", "32.1.3-jre")

        assert details.version == "32.1.3-jre"
        assert [v.version for v in details.versions] == ["33.0.0-jre", "32.1.3-jre"]
        assert details.description is None


class TestCopySnippets:
    """Tests for Maven snippet formats."""

    def test_xml_default(self, adapter: SonatypeSourceAdapter) -> None:
        snippet = adapter.get_copy_snippet("junit:junit", CopyOptions(version="4.13.2"))

        assert snippet == (
            "    <dependency>\n"
            "        <groupId>junit</groupId>\n"
            "        <artifactId>junit</artifactId>\n"
            "        <version>4.13.2</version>\n"
            "    </dependency>"
        )

    def test_xml_with_scope(self, adapter: SonatypeSourceAdapter) -> None:
        options = CopyOptions(version="4.13.2", scope="test")

        snippet = adapter.get_copy_snippet("junit:junit", options)

        assert "        <scope>test</scope>" in snippet

    @pytest.mark.parametrize(
        ("fmt", "scope", "expected"),
        [
            ("gradle", None, "implementation 'junit:junit:4.13.2'"),
            ("gradle", "test", "testImplementation 'junit:junit:4.13.2'"),
            ("gradle", "provided", "compileOnly 'junit:junit:4.13.2'"),
            ("sbt", None, '"junit" % "junit" % "4.13.2"'),
            ("sbt", "test", '"junit" % "junit" % "4.13.2" % Test'),
            ("grape", None, "@Grab(group='junit', module='junit', version='4.13.2')"),
        ],
    )
    def test_formats(
        self, adapter: SonatypeSourceAdapter, fmt: str, scope: str | None, expected: str
    ) -> None:
        options = CopyOptions(version="4.13.2", format=fmt, scope=scope)

        assert adapter.get_copy_snippet("junit:junit", options) == expected

    def test_unknown_format_is_xml(self, adapter: SonatypeSourceAdapter) -> None:
        snippet = adapter.get_copy_snippet("junit:junit", CopyOptions(format="bazel"))

        assert snippet.startswith("    <dependency>")
        assert "<version>LATEST</version>" in snippet

    def test_invalid_coordinate(self, adapter: SonatypeSourceAdapter) -> None:
        with pytest.raises(InvalidCoordinateError):
            adapter.get_copy_snippet("junit", CopyOptions())
