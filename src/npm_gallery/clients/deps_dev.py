"""Client for the deps.dev dependency graph (dependents and requirements)."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import (
    CACHE_TTL_PACKAGE_INFO_SECONDS,
    DEPS_DEV_API_URL,
    DEPS_DEV_WEB_URL,
)
from npm_gallery.exceptions import ApiError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    DependentsInfo,
    RequirementItem,
    RequirementSection,
    RequirementsInfo,
)

logger = get_logger(__name__)


def _q(value: str) -> str:
    return quote(value, safe="")


def humanize_relation(relation: str) -> str:
    """`dependencyManagement` -> `Dependency Management`, `dev_deps` -> `Dev Deps`."""
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", relation)
    spaced = re.sub(r"[_-]+", " ", spaced)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


class DepsDevClient(BaseApiClient):
    """deps.dev API (requirements) plus its web endpoint (dependents).

    `system` is the deps.dev ecosystem name: npm, maven, nuget, go.
    """

    name = "deps-dev"

    def __init__(
        self,
        base_url: str = DEPS_DEV_API_URL,
        web_url: str = DEPS_DEV_WEB_URL,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url, **kwargs)
        self.web_url = web_url.rstrip("/")

    def dependents_web_url(self, system: str, name: str, version: str) -> str:
        return f"{self.web_url}/_/s/{system}/p/{_q(name)}/v/{_q(version)}/dependents"

    def requirements_web_url(self, system: str, name: str, version: str) -> str:
        if system == "npm":
            return f"{self.web_url}/npm/{_q(name)}/{_q(version)}/dependencies"
        return f"{self.web_url}/_/s/{system}/p/{_q(name)}/v/{_q(version)}/dependencies"

    async def get_dependents(self, system: str, name: str, version: str) -> DependentsInfo | None:
        url = self.dependents_web_url(system, name, version)
        data = await self._get_json(
            url,
            cache_key=f"dependents:{system}:{name}@{version}",
            ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
        )
        try:
            info = DependentsInfo.model_validate(data)
        except ValidationError as e:
            logger.warning(
                f"Unexpected dependents payload for {name}@{version}: {e.error_count()} errors"
            )
            return None
        return info.model_copy(update={"web_url": url})

    async def get_requirements(
        self, system: str, name: str, version: str
    ) -> RequirementsInfo | None:
        """Requirements grouped into sections, or None when deps.dev has none."""
        data = await self._fetch_requirements(system, name, version)
        if data is None:
            return None

        key = data.get("versionKey") or {}
        return RequirementsInfo(
            system=key.get("system") or system.upper(),
            package=key.get("name") or name,
            version=key.get("version") or version,
            sections=extract_requirement_sections(data, system),
            web_url=self.requirements_web_url(system, name, version),
        )

    async def _fetch_requirements(
        self, system: str, name: str, version: str
    ) -> dict[str, Any] | None:
        path = f"systems/{system}/packages/{_q(name)}/versions/{_q(version)}:requirements"
        for api_version in ("v3", "v3alpha"):
            try:
                return await self._get_json(
                    f"/{api_version}/{path}",
                    cache_key=f"requirements:{api_version}:{system}:{name}@{version}",
                    ttl=CACHE_TTL_PACKAGE_INFO_SECONDS,
                )
            except ApiError as e:
                logger.debug(f"deps.dev {api_version} requirements failed for {name}: {e}")
        return None


# =============================================================================
# RESPONSE MAPPING
# =============================================================================


def _tree_item(item: dict[str, Any]) -> RequirementItem:
    optional = item.get("optional")
    exclusions = [
        entry if isinstance(entry, str) else entry.get("name", "")
        for entry in item.get("exclusions") or []
    ]
    return RequirementItem(
        name=item.get("name") or "",
        requirement=item.get("requirement"),
        version=item.get("version"),
        scope=item.get("scope"),
        optional=optional is True or optional == "true",
        classifier=item.get("classifier") or None,
        type=item.get("type") or None,
        exclusions=[e for e in exclusions if e] or None,
    )


def _group_flat(requirements: list[dict[str, Any]]) -> list[RequirementSection]:
    grouped: dict[str, list[RequirementItem]] = {}
    for req in requirements:
        key = req.get("versionKey") or {}
        item = RequirementItem(
            name=key.get("name") or "",
            requirement=req.get("requirement"),
            version=key.get("version"),
            scope=req.get("scope"),
            optional=req.get("optional"),
            classifier=req.get("classifier"),
            type=req.get("type"),
            exclusions=[e["name"] for e in req.get("exclusions") or [] if e.get("name")]
            or None,
        )
        grouped.setdefault(req.get("relation") or "requirements", []).append(item)

    return [
        RequirementSection(
            id=relation,
            title=humanize_relation(relation),
            items=[item for item in items if item.name],
        )
        for relation, items in grouped.items()
    ]


def _npm_sections(tree: dict[str, Any] | None) -> list[RequirementSection]:
    if not tree or not isinstance(tree.get("dependencies"), dict):
        return []

    sections = []
    for section_id, items in tree["dependencies"].items():
        normalized = [
            RequirementItem(
                name=i["name"], requirement=i.get("requirement"), version=i.get("version")
            )
            for i in items
            if i.get("name")
        ]
        if normalized:
            sections.append(
                RequirementSection(
                    id=section_id, title=humanize_relation(section_id), items=normalized
                )
            )

    bundled = []
    for entry in tree.get("bundled") or []:
        if isinstance(entry, str):
            bundled.append(RequirementItem(name=entry))
        elif entry.get("name"):
            bundled.append(
                RequirementItem(
                    name=entry["name"],
                    requirement=entry.get("requirement"),
                    version=entry.get("version"),
                )
            )
    if bundled:
        sections.append(RequirementSection(id="bundled", title="Bundled", items=bundled))
    return sections


def _maven_sections(tree: dict[str, Any] | None) -> list[RequirementSection]:
    if not tree:
        return []

    sections = []
    parent = tree.get("parent") or {}
    if parent.get("name"):
        sections.append(
            RequirementSection(
                id="parent",
                title="Parent",
                items=[RequirementItem(name=parent["name"], version=parent.get("version"))],
            )
        )

    for section_id, title, items in (
        ("dependencies", "Dependencies", tree.get("dependencies")),
        ("dependencyManagement", "Dependency Management", tree.get("dependencyManagement")),
    ):
        if not isinstance(items, list):
            continue
        normalized = [item for item in map(_tree_item, items) if item.name]
        if normalized:
            sections.append(RequirementSection(id=section_id, title=title, items=normalized))
    return sections


def extract_requirement_sections(data: dict[str, Any], system: str) -> list[RequirementSection]:
    if data.get("requirements"):
        return _group_flat(data["requirements"])
    if system == "npm":
        return _npm_sections(data.get("npm"))
    if system == "maven":
        return _maven_sections(data.get("maven"))
    return []
