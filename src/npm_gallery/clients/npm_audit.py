"""Client for the npm registry's bulk security advisory endpoint.

POST `/-/npm/v1/security/advisories/bulk` takes `{name: [versions]}` and
answers `{name: [advisory, ...]}` with every advisory for the package,
whatever the version. Advisories are matched to each requested version
here, using the advisory's `vulnerable_versions` range.

Used as the npm security fallback when OSV is unavailable. Like OSV
lookups, failures yield empty results rather than errors.

Example:
    audit = NpmAuditClient()
    info = await audit.check_package("lodash", "4.17.20")
    print(info.summary.high)
"""

from __future__ import annotations

import re
from typing import Any

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import NPM_REGISTRY_URL
from npm_gallery.exceptions import ApiError
from npm_gallery.logging import get_logger
from npm_gallery.models import CvssScore, SecurityInfo, Vulnerability, VulnerabilitySummary
from npm_gallery.utils import version_key

logger = get_logger(__name__)

UPPER_BOUND_PATTERN = re.compile(r"<\s*([\d.]+)")
SEVERITIES = ("critical", "high", "moderate", "low", "info")


def is_version_vulnerable(version: str, vulnerable_range: str | None) -> bool:
    """Match `version` against an advisory range.

    Only `*` and an upper bound (`<1.2.3`, `>=1.0.0 <1.2.3`) are understood;
    any other range counts as vulnerable.
    """
    if not vulnerable_range or vulnerable_range.strip() == "*":
        return True
    match = UPPER_BOUND_PATTERN.search(vulnerable_range)
    if match:
        return version_key(version) < version_key(match.group(1))
    return True


def transform_advisory(advisory: dict[str, Any]) -> Vulnerability:
    cvss = advisory.get("cvss") or {}
    cwe = advisory.get("cwe")
    severity = str(advisory.get("severity") or "moderate").lower()
    return Vulnerability(
        id=int(advisory.get("id") or 0),
        title=advisory.get("title") or f"Advisory {advisory.get('id', '')}",
        severity=severity if severity in SEVERITIES else "moderate",
        url=advisory.get("url"),
        vulnerable_versions=advisory.get("vulnerable_versions"),
        patched_versions=advisory.get("patched_versions"),
        recommendation=advisory.get("recommendation"),
        cwe=[cwe] if isinstance(cwe, str) else cwe,
        cvss=CvssScore(score=cvss["score"], vector_string=cvss.get("vectorString"))
        if isinstance(cvss.get("score"), (int, float))
        else None,
    )


def _security_info(vulnerabilities: list[Vulnerability]) -> SecurityInfo:
    return SecurityInfo(
        vulnerabilities=vulnerabilities,
        summary=VulnerabilitySummary.from_vulnerabilities(vulnerabilities),
    )


class NpmAuditClient(BaseApiClient):
    name = "npm-audit"

    def __init__(self, base_url: str = NPM_REGISTRY_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def check_packages(self, packages: dict[str, list[str]]) -> dict[str, SecurityInfo]:
        """Advisories per `name@version`. Every requested pair gets an entry."""
        try:
            response = await self._post_json("/-/npm/v1/security/advisories/bulk", packages)
        except ApiError as e:
            logger.warning(f"npm audit failed for {len(packages)} packages: {e}")
            response = {}
        if not isinstance(response, dict):
            response = {}

        results: dict[str, SecurityInfo] = {}
        for name, versions in packages.items():
            advisories = response.get(name) or []
            for version in versions:
                results[f"{name}@{version}"] = _security_info(
                    [
                        transform_advisory(advisory)
                        for advisory in advisories
                        if is_version_vulnerable(version, advisory.get("vulnerable_versions"))
                    ]
                )
        return results

    async def check_package(self, name: str, version: str) -> SecurityInfo:
        results = await self.check_packages({name: [version]})
        return results.get(f"{name}@{version}") or SecurityInfo.empty()
