"""Tests for utility functions."""

from npm_gallery.models import PackageInfo, SearchResult, VersionInfo
from npm_gallery.utils import (
    as_list,
    clean_repository_url,
    normalize_license,
    normalize_person,
    normalize_repository,
    parse_time,
    sort_packages,
    sort_versions_by_date,
    surface_exact_match,
    version_key,
)


def _pkg(name, downloads=None, exact_match=False):
    return PackageInfo(name=name, version="1.0.0", downloads=downloads, exact_match=exact_match)


class TestAsList:
    """Tests for as_list."""

    def test_wraps_and_passes_through(self):
        assert as_list("a") == ["a"]
        assert as_list(["a", "b"]) == ["a", "b"]
        assert as_list(None) == []


class TestParseTime:
    """Tests for parse_time."""

    def test_trailing_z(self):
        parsed = parse_time("2022-06-14T19:46:38.369Z")
        assert parsed is not None
        assert parsed.year == 2022
        assert parsed.utcoffset().total_seconds() == 0

    def test_unparsable(self):
        assert parse_time("yesterday") is None
        assert parse_time("") is None
        assert parse_time(1655235998) is None


class TestVersionOrdering:
    """Tests for version_key and sort_versions_by_date."""

    def test_numeric_ordering(self):
        versions = ["1.10.0", "1.2.0", "1.2.0-beta.1", "0.9"]
        assert sorted(versions, key=version_key) == ["0.9", "1.2.0-beta.1", "1.2.0", "1.10.0"]

    def test_newest_first_undated_last(self):
        versions = [
            VersionInfo(version="1.0.0", published_at="2020-01-01T00:00:00Z"),
            VersionInfo(version="0.0.1"),
            VersionInfo(version="2.0.0", published_at="2023-01-01T00:00:00.000Z"),
        ]

        ordered = sort_versions_by_date(versions)

        assert [v.version for v in ordered] == ["2.0.0", "1.0.0", "0.0.1"]


class TestNormalizers:
    """Tests for manifest field normalization."""

    def test_license_forms(self):
        assert normalize_license("MIT") == "MIT"
        assert normalize_license({"type": "ISC", "url": "x"}) == "ISC"
        assert normalize_license([{"type": "MIT"}, "Apache-2.0"]) == "MIT OR Apache-2.0"
        assert normalize_license("") is None
        assert normalize_license(None) is None

    def test_person_string(self):
        author = normalize_person("Jane Doe <jane@example.com> (https://jane.dev)")
        assert author is not None
        assert author.name == "Jane Doe"
        assert author.email == "jane@example.com"
        assert author.url == "https://jane.dev"

    def test_person_name_only(self):
        author = normalize_person("Jane Doe")
        assert author is not None
        assert author.name == "Jane Doe"
        assert author.email is None

    def test_person_dict(self):
        assert normalize_person({"name": "Jane"}).name == "Jane"
        assert normalize_person({}) is None
        assert normalize_person("   ") is None

    def test_repository_forms(self):
        assert normalize_repository("github:facebook/react").url == "github:facebook/react"

        repo = normalize_repository(
            {"type": "git", "url": "https://github.com/x/y.git", "directory": "packages/z"}
        )
        assert repo.type == "git"
        assert repo.directory == "packages/z"
        assert normalize_repository({"type": "git"}) is None

    def test_clean_repository_url(self):
        assert clean_repository_url("git+https://github.com/facebook/react.git") == (
            "https://github.com/facebook/react"
        )
        assert clean_repository_url("git://github.com/x/y.git") == "https://github.com/x/y"
        assert clean_repository_url("ssh://git@github.com/x/y") == "https://github.com/x/y"


class TestSurfaceExactMatch:
    """Tests for surface_exact_match."""

    def test_moves_hit_to_front(self):
        result = SearchResult(packages=[_pkg("react-dom"), _pkg("React")], total=2)

        surfaced = surface_exact_match(result, "react")

        assert [p.name for p in surfaced.packages] == ["React", "react-dom"]
        assert surfaced.packages[0].exact_match is True
        assert surfaced.total == 2

    def test_prepends_fallback(self):
        result = SearchResult(packages=[_pkg("react-dom")], total=1)

        surfaced = surface_exact_match(result, "react", fallback=_pkg("react"))

        assert [p.name for p in surfaced.packages] == ["react", "react-dom"]
        assert surfaced.packages[0].exact_match is True
        assert surfaced.total == 2

    def test_unchanged_without_hit(self):
        result = SearchResult(packages=[_pkg("react-dom")], total=1)

        assert surface_exact_match(result, "react") == result


class TestSortPackages:
    """Tests for sort_packages."""

    def test_exact_match_stays_pinned(self):
        packages = [_pkg("b", 10, exact_match=True), _pkg("a", 50), _pkg("c", 30)]

        ordered = sort_packages(packages, key=lambda p: p.downloads, reverse=True)

        assert [p.name for p in ordered] == ["b", "a", "c"]
