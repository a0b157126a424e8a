"""Client for Maven Central search (search.maven.org) and POM downloads.

Example:
    client = SonatypeClient()
    raw = await client.search("g:com.google.guava AND a:guava", core="gav", rows=5)
    pom = await client.get_pom("com.google.guava", "guava", "33.0.0-jre")
    print(pom["dependencies"])
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any, Literal

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import (
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    CACHE_TTL_SEARCH_SECONDS,
    CACHE_TTL_VERSIONS_SECONDS,
    SONATYPE_MAX_VERSION_ROWS,
    SONATYPE_URL,
)
from npm_gallery.exceptions import ApiError
from npm_gallery.logging import get_logger

logger = get_logger(__name__)

PROPERTY_PATTERN = re.compile(r"\$\{([\w.-]+)\}")


class SonatypeClient(BaseApiClient):
    name = "sonatype"

    def __init__(self, base_url: str = SONATYPE_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def search(
        self,
        query: str,
        *,
        start: int = 0,
        rows: int = 20,
        core: Literal["ga", "gav"] = "ga",
        sort: str | None = None,
    ) -> dict[str, Any]:
        """Solr query against `/solrsearch/select`.

        Args:
            query: Solr query, e.g. `guava`, `g:com.google.guava`, `tags:json`.
            start: Offset of the first document.
            rows: Page size.
            core: `ga` for one doc per artifact, `gav` for one doc per version.
            sort: Optional Solr sort clause such as `a asc`.
        """
        params: dict[str, Any] = {
            "q": query,
            "rows": rows,
            "start": start,
            "core": core,
            "wt": "json",
        }
        if sort:
            params["sort"] = sort
        return await self._get_json(
            "/solrsearch/select",
            params=params,
            cache_key=f"search:{query}:{start}:{rows}:{core}:{sort}",
            ttl=CACHE_TTL_SEARCH_SECONDS,
        )

    async def get_versions(self, group_id: str, artifact_id: str) -> list[dict[str, Any]]:
        data = await self._get_json(
            "/solrsearch/select",
            params={
                "q": f"g:{group_id} AND a:{artifact_id}",
                "rows": SONATYPE_MAX_VERSION_ROWS,
                "start": 0,
                "core": "gav",
                "wt": "json",
            },
            cache_key=f"versions:{group_id}:{artifact_id}",
            ttl=CACHE_TTL_VERSIONS_SECONDS,
        )
        return (data.get("response") or {}).get("docs") or []

    async def get_artifact(self, group_id: str, artifact_id: str) -> dict[str, Any] | None:
        """Latest `ga` document for the artifact, or None if Maven Central has none."""
        data = await self.search(f"g:{group_id} AND a:{artifact_id}", rows=1)
        docs = (data.get("response") or {}).get("docs") or []
        return docs[0] if docs else None

    async def get_pom(self, group_id: str, artifact_id: str, version: str) -> dict[str, Any] | None:
        """Download and parse the POM; None when it is missing or unparsable."""
        cache_key = f"pom:{group_id}:{artifact_id}:{version}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        path = f"{group_id.replace('.', '/')}/{artifact_id}/{version}/{artifact_id}-{version}.pom"
        try:
            response = await self._request("GET", "/remotecontent", params={"filepath": path})
        except ApiError as e:
            logger.debug(f"POM unavailable for {group_id}:{artifact_id}:{version}: {e}")
            return None

        pom = parse_pom(response.text)
        if pom is not None:
            self._cache.set(cache_key, pom, ttl=CACHE_TTL_PACKAGE_INFO_SECONDS)
        return pom


# =============================================================================
# POM PARSING
# =============================================================================


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element | None, name: str) -> ET.Element | None:
    if element is None:
        return None
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _children(element: ET.Element | None, name: str) -> list[ET.Element]:
    child = _child(element, name)
    return list(child) if child is not None else []


def _text(element: ET.Element | None, name: str) -> str | None:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _fields(element: ET.Element) -> dict[str, str | None]:
    return {_local(child.tag): (child.text or "").strip() or None for child in element}


def parse_pom(xml_text: str) -> dict[str, Any] | None:
    """Parse the parts of a POM the Maven adapter shows.

    `${prop}` references in dependency versions resolve against
    `<properties>`, `project.version` and `project.groupId`.

    Returns:
        Dict with group_id, artifact_id, version, name, description, url,
        licenses, developers, properties and dependencies; None if the
        document is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.debug(f"Unparsable POM: {e}")
        return None

    parent = _child(root, "parent")
    group_id = _text(root, "groupId") or _text(parent, "groupId")
    version = _text(root, "version") or _text(parent, "version")

    properties: dict[str, str] = {}
    props = _child(root, "properties")
    if props is not None:
        for prop in props:
            if prop.text:
                properties[_local(prop.tag)] = prop.text.strip()
    if version:
        properties.setdefault("project.version", version)
    if group_id:
        properties.setdefault("project.groupId", group_id)

    def resolve(value: str | None) -> str | None:
        if not value:
            return value
        return PROPERTY_PATTERN.sub(lambda m: properties.get(m.group(1), m.group(0)), value)

    licenses = [
        {"name": _text(lic, "name"), "url": _text(lic, "url")}
        for lic in _children(root, "licenses")
    ]
    developers = [
        {"name": _text(dev, "name"), "email": _text(dev, "email"), "url": _text(dev, "url")}
        for dev in _children(root, "developers")
    ]

    dependencies = []
    for dep in _children(root, "dependencies"):
        fields = _fields(dep)
        dependencies.append(
            {
                "group_id": resolve(fields.get("groupId")),
                "artifact_id": fields.get("artifactId"),
                "version": resolve(fields.get("version")),
                "scope": fields.get("scope") or "compile",
                "optional": fields.get("optional") == "true",
            }
        )

    return {
        "group_id": group_id,
        "artifact_id": _text(root, "artifactId"),
        "version": version,
        "name": _text(root, "name"),
        "description": _text(root, "description"),
        "url": _text(root, "url"),
        "licenses": licenses,
        "developers": developers,
        "properties": properties,
        "dependencies": dependencies,
    }
