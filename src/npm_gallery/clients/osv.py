"""Client for the OSV vulnerability database.

Maps OSV advisories onto `SecurityInfo`. Lookups never fail loudly: any
upstream problem yields an empty SecurityInfo so a package view can still
render.

Example:
    osv = OsvClient()
    info = await osv.query("lodash", "4.17.20", ecosystem="npm")
    print(info.summary.high)
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import CACHE_TTL_SECURITY_SECONDS, OSV_API_URL
from npm_gallery.exceptions import ApiError
from npm_gallery.logging import get_logger
from npm_gallery.models import (
    CvssScore,
    SecurityInfo,
    Severity,
    Vulnerability,
    VulnerabilitySummary,
)

logger = get_logger(__name__)

# Ecosystem names as OSV spells them
OSV_ECOSYSTEMS: dict[str, str] = {
    "npm": "npm",
    "maven": "Maven",
    "nuget": "NuGet",
    "go": "Go",
}

# Representative base score per severity when only a CVSS vector is known
ESTIMATED_CVSS_SCORES: dict[str, float] = {
    "critical": 9.5,
    "high": 7.5,
    "moderate": 5.5,
    "low": 2.5,
    "info": 0.0,
}

_CVSS_TYPES = ("CVSS_V4", "CVSS_V3", "CVSS_V2")


class OsvClient(BaseApiClient):
    name = "osv"

    def __init__(self, base_url: str = OSV_API_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def query(self, name: str, version: str, ecosystem: str = "npm") -> SecurityInfo:
        """Vulnerabilities affecting `name@version`; empty on any failure."""
        info = await self.try_query(name, version, ecosystem)
        return info if info is not None else SecurityInfo.empty()

    async def try_query(
        self, name: str, version: str, ecosystem: str = "npm"
    ) -> SecurityInfo | None:
        """Like `query`, but None when OSV could not be reached or answered badly."""
        osv_ecosystem = OSV_ECOSYSTEMS.get(ecosystem.lower(), ecosystem)
        cache_key = f"query:{osv_ecosystem}:{name}@{version}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        payload = {"package": {"name": name, "ecosystem": osv_ecosystem}, "version": version}
        try:
            data = await self._post_json("/v1/query", payload)
        except ApiError as e:
            logger.warning(f"OSV query failed for {name}@{version}: {e}")
            return None

        info = transform_osv_response(data.get("vulns") or [])
        self._cache.set(cache_key, info, ttl=CACHE_TTL_SECURITY_SECONDS)
        return info

    async def query_bulk(
        self, packages: list[tuple[str, str]], ecosystem: str = "npm"
    ) -> dict[str, SecurityInfo]:
        """Query several (name, version) pairs, keyed `name@version`."""
        infos = await asyncio.gather(
            *(self.query(name, version, ecosystem) for name, version in packages)
        )
        return {
            f"{name}@{version}": info
            for (name, version), info in zip(packages, infos, strict=True)
        }


# =============================================================================
# RESPONSE MAPPING
# =============================================================================


def transform_osv_response(vulns: list[dict[str, Any]]) -> SecurityInfo:
    vulnerabilities = [transform_vulnerability(vuln) for vuln in vulns]
    return SecurityInfo(
        vulnerabilities=vulnerabilities,
        summary=VulnerabilitySummary.from_vulnerabilities(vulnerabilities),
    )


def _severity(vuln: dict[str, Any]) -> Severity:
    db_severity = str((vuln.get("database_specific") or {}).get("severity") or "").lower()
    for level in ("critical", "high", "moderate", "low"):
        if level in db_severity:
            return level  # type: ignore[return-value]
    return "moderate"


def _version_ranges(vuln: dict[str, Any]) -> tuple[str | None, str | None]:
    affected = vuln.get("affected") or []
    if not affected:
        return None, None

    first = affected[0]
    ranges = first.get("ranges") or []
    if ranges:
        events = ranges[0].get("events") or []
        introduced = next((e["introduced"] for e in events if e.get("introduced")), None)
        fixed = next((e["fixed"] for e in events if e.get("fixed")), None)
        if introduced is None:
            return None, None
        if fixed:
            return f">={introduced} <{fixed}", f">={fixed}"
        return f">={introduced}", None

    versions = first.get("versions")
    if versions:
        return ", ".join(versions), None
    return None, None


def _advisory_url(vuln: dict[str, Any], cve_id: str | None) -> str:
    references = vuln.get("references") or []
    if references:
        for ref in references:
            url = ref.get("url", "")
            if ref.get("type") == "ADVISORY" or "advisories" in url:
                return url
        web = next((ref.get("url") for ref in references if ref.get("type") == "WEB"), None)
        return web or references[0].get("url", "")
    if cve_id:
        return f"https://cve.mitre.org/cgi-bin/cvename.cgi?name={cve_id}"
    return f"https://osv.dev/vulnerability/{vuln.get('id', '')}"


def transform_vulnerability(vuln: dict[str, Any]) -> Vulnerability:
    osv_id = str(vuln.get("id", ""))
    severity = _severity(vuln)

    cvss: CvssScore | None = None
    for entry in vuln.get("severity") or []:
        if entry.get("type") in _CVSS_TYPES and entry.get("score"):
            cvss = CvssScore(
                score=ESTIMATED_CVSS_SCORES[severity], vector_string=entry["score"]
            )
            break

    vulnerable, patched = _version_ranges(vuln)

    aliases = vuln.get("aliases") or []
    cve_id = next((a for a in aliases if a.startswith("CVE-")), None)
    if cve_id is None and osv_id.startswith("CVE-"):
        cve_id = osv_id

    if patched:
        recommendation = f"Upgrade to version {patched} or later"
    elif vulnerable:
        recommendation = f"Update to a version outside the vulnerable range: {vulnerable}"
    else:
        recommendation = None

    digits = re.sub(r"\D", "", osv_id)[:10]

    return Vulnerability(
        id=int(digits) if digits else 0,
        title=vuln.get("summary") or vuln.get("details") or f"Vulnerability {osv_id}",
        severity=severity,
        url=_advisory_url(vuln, cve_id),
        vulnerable_versions=vulnerable,
        patched_versions=patched,
        recommendation=recommendation,
        cwe=(vuln.get("database_specific") or {}).get("cwe_ids"),
        cvss=cvss,
        published=vuln.get("published"),
        details=vuln.get("details"),
    )
