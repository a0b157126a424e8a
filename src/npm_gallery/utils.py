"""Utility functions shared by transformers and adapters."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

from npm_gallery.models import (
    PackageAuthor,
    PackageInfo,
    PackageRepository,
    SearchResult,
    VersionInfo,
)

T = TypeVar("T")

# "Name <email> (url)" as used in package.json person fields
PERSON_PATTERN = re.compile(r"^\s*([^<(]*?)\s*(?:<([^>]*)>)?\s*(?:\(([^)]*)\))?\s*$")


def as_list(value: T | list[T] | None) -> list[T]:
    """Wrap scalars, pass lists through, map None to [].

    >>> as_list("a")
    ['a']
    >>> as_list(None)
    []
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def parse_time(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (accepting a trailing Z); None if unparsable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def sort_versions_by_date(versions: Iterable[VersionInfo]) -> list[VersionInfo]:
    """Newest first by `published_at`; undated versions keep their order at the end."""
    versions = list(versions)
    dated = [(parse_time(v.published_at), v) for v in versions]
    with_date = [pair for pair in dated if pair[0] is not None]
    without_date = [v for dt, v in dated if dt is None]
    with_date.sort(key=lambda pair: pair[0].timestamp(), reverse=True)  # type: ignore[union-attr]
    return [v for _, v in with_date] + without_date


def version_key(version: str) -> tuple[tuple[int, ...], bool, str]:
    """Sort key for dotted versions; pre-releases sort below their release.

    >>> sorted(["1.10.0", "1.2.0", "1.2.0-beta"], key=version_key)
    ['1.2.0-beta', '1.2.0', '1.10.0']
    """
    release, _, prerelease = version.partition("-")
    numbers = tuple(int(part) if part.isdigit() else 0 for part in release.split("."))
    return numbers, not prerelease, prerelease


def normalize_license(value: Any) -> str | None:
    """npm licenses may be a string, a {type} dict, or a legacy list of those."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return value.get("type") or value.get("name")
    if isinstance(value, list) and value:
        names = [normalize_license(item) for item in value]
        return " OR ".join(name for name in names if name) or None
    return None


def normalize_person(value: Any) -> PackageAuthor | None:
    """Accept `{"name", "email", "url"}` or the `"Name <email> (url)"` string form."""
    if isinstance(value, dict):
        if not any(value.get(k) for k in ("name", "email", "url")):
            return None
        return PackageAuthor(name=value.get("name"), email=value.get("email"), url=value.get("url"))
    if isinstance(value, str) and value.strip():
        match = PERSON_PATTERN.match(value)
        if match is None:
            return PackageAuthor(name=value.strip())
        name, email, url = match.groups()
        return PackageAuthor(name=name or None, email=email or None, url=url or None)
    return None


def normalize_repository(value: Any) -> PackageRepository | None:
    """Accept a repository URL string or a `{type, url, directory}` dict."""
    if isinstance(value, str) and value:
        return PackageRepository(url=value)
    if isinstance(value, dict) and value.get("url"):
        return PackageRepository(
            type=value.get("type"), url=value["url"], directory=value.get("directory")
        )
    return None


def clean_repository_url(url: str) -> str:
    """Turn `git+https://host/x.git` or `git://host/x` into a browsable https URL.

    >>> clean_repository_url("git+https://github.com/facebook/react.git")
    'https://github.com/facebook/react'
    """
    url = re.sub(r"^git\+", "", url)
    url = re.sub(r"^git://", "https://", url)
    url = re.sub(r"^ssh://git@", "https://", url)
    return re.sub(r"\.git$", "", url)


def surface_exact_match(
    result: SearchResult,
    exact_name: str,
    fallback: PackageInfo | None = None,
) -> SearchResult:
    """Move the case-insensitive `exact_name` hit to the front, flagged `exact_match`.

    If the hit is not among the results, `fallback` (separately fetched) is
    prepended instead and `total` grows to account for it.
    """
    wanted = exact_name.lower()
    exact = next((p for p in result.packages if p.name.lower() == wanted), None)
    others = [p for p in result.packages if p.name.lower() != wanted]

    if exact is not None:
        packages = [exact.model_copy(update={"exact_match": True}), *others]
        return result.model_copy(update={"packages": packages})

    if fallback is not None:
        packages = [fallback.model_copy(update={"exact_match": True}), *others]
        total = max(result.total, len(result.packages) + 1)
        return result.model_copy(update={"packages": packages, "total": total})

    return result


def sort_packages(
    packages: list[PackageInfo],
    key: Callable[[PackageInfo], Any],
    *,
    reverse: bool = False,
) -> list[PackageInfo]:
    """Sort packages, keeping a flagged exact match pinned to the front."""
    pinned = [p for p in packages if p.exact_match]
    rest = sorted((p for p in packages if not p.exact_match), key=key, reverse=reverse)
    return pinned + rest
