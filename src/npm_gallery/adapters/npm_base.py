"""Behaviour shared by the npm-family adapters (npm registry, npms.io).

Both serve the npm ecosystem, so install/update/remove command generation,
package-manager detection and security lookups live here. Security asks
OSV first and falls back to the npm audit endpoint when OSV cannot answer.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from npm_gallery.clients.deps_dev import DepsDevClient
from npm_gallery.clients.npm_audit import NpmAuditClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.exceptions import CapabilityNotSupportedError
from npm_gallery.models import (
    InstallOptions,
    PackageManager,
    ProjectType,
    SearchFilters,
    SecurityInfo,
)
from npm_gallery.sources.base import SourceAdapter
from npm_gallery.sources.capabilities import Capability

# Checked in order; first lock file present wins
LOCK_FILES: tuple[tuple[str, PackageManager], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)

_DEPENDENCY_FLAGS: dict[PackageManager, dict[str, str]] = {
    "npm": {
        "devDependencies": "--save-dev",
        "peerDependencies": "--save-peer",
        "optionalDependencies": "--save-optional",
    },
    "yarn": {
        "devDependencies": "--dev",
        "peerDependencies": "--peer",
        "optionalDependencies": "--optional",
    },
    "pnpm": {
        "devDependencies": "--save-dev",
        "peerDependencies": "--save-peer",
        "optionalDependencies": "--save-optional",
    },
}

_ADD_VERB: dict[PackageManager, str] = {
    "npm": "npm install",
    "yarn": "yarn add",
    "pnpm": "pnpm add",
}
_UPDATE_VERB: dict[PackageManager, str] = {
    "npm": "npm update",
    "yarn": "yarn upgrade",
    "pnpm": "pnpm update",
}
_REMOVE_VERB: dict[PackageManager, str] = {
    "npm": "npm uninstall",
    "yarn": "yarn remove",
    "pnpm": "pnpm remove",
}
_EXACT_FLAG: dict[PackageManager, str] = {
    "npm": "--save-exact",
    "yarn": "--exact",
    "pnpm": "--save-exact",
}


def build_search_text(query: str, filters: SearchFilters | None) -> str:
    """Append npm search qualifiers (`author:`, `scope:`, `keywords:`) to `query`."""
    parts = [query.strip()]
    if filters is not None:
        if filters.author:
            parts.append(f"author:{filters.author}")
        if filters.scope:
            parts.append(f"scope:{filters.scope.lstrip('@')}")
        if filters.keywords:
            parts.append(f"keywords:{','.join(filters.keywords)}")
    return " ".join(part for part in parts if part)


def detect_package_manager(root: Path | None, default: PackageManager = "npm") -> PackageManager:
    """Pick the package manager from lock files under `root`."""
    if root is not None:
        for file_name, manager in LOCK_FILES:
            if (root / file_name).is_file():
                return manager
    return default


class NpmBaseAdapter(SourceAdapter):
    """Base for adapters serving the npm ecosystem.

    Args:
        osv: Vulnerability client, asked first for security lookups.
        audit: npm advisory client, used when OSV is absent or fails.
            SECURITY is declared when either client is present.
        deps_dev: Dependency-graph client for dependents/requirements.
        workspace_root: Folder whose lock files choose the package manager.
        default_package_manager: Used when no lock file is found.
    """

    project_type = ProjectType.NPM

    def __init__(
        self,
        osv: OsvClient | None = None,
        deps_dev: DepsDevClient | None = None,
        workspace_root: Path | None = None,
        default_package_manager: PackageManager = "npm",
        audit: NpmAuditClient | None = None,
    ) -> None:
        super().__init__(deps_dev)
        self._osv = osv
        self._audit = audit
        self._workspace_root = workspace_root
        self._default_package_manager = default_package_manager

    def get_ecosystem(self) -> str:
        return "npm"

    def package_manager(self) -> PackageManager:
        return detect_package_manager(self._workspace_root, self._default_package_manager)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def get_install_command(self, name: str, options: InstallOptions) -> str:
        self.require_capability(Capability.INSTALLATION)
        manager = options.package_manager or self.package_manager()
        spec = f"{name}@{options.version}" if options.version else name

        parts = [_ADD_VERB[manager], spec]
        flag = _DEPENDENCY_FLAGS[manager].get(options.type)
        if flag:
            parts.append(flag)
        if options.exact:
            parts.append(_EXACT_FLAG[manager])
        return " ".join(parts)

    def get_update_command(self, name: str, version: str | None = None) -> str:
        self.require_capability(Capability.INSTALLATION)
        manager = self.package_manager()
        if version:
            return f"{_ADD_VERB[manager]} {name}@{version}"
        return f"{_UPDATE_VERB[manager]} {name}"

    def get_remove_command(self, name: str) -> str:
        self.require_capability(Capability.INSTALLATION)
        return f"{_REMOVE_VERB[self.package_manager()]} {name}"

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    async def get_security_info(self, name: str, version: str) -> SecurityInfo | None:
        results = await self.get_security_info_bulk([(name, version)])
        return results[f"{name}@{version}"]

    async def get_security_info_bulk(
        self, packages: list[tuple[str, str]]
    ) -> dict[str, SecurityInfo | None]:
        """Ask OSV for every pair, then npm audit for the pairs OSV could not answer."""
        self.require_capability(Capability.SECURITY)
        if self._osv is None and self._audit is None:
            raise CapabilityNotSupportedError(
                Capability.SECURITY, self.source_type.value, "client not configured"
            )

        results: dict[str, SecurityInfo | None] = {}
        pending = list(packages)
        if self._osv is not None:
            osv = self._osv
            infos = await asyncio.gather(
                *(osv.try_query(name, version, "npm") for name, version in packages)
            )
            pending = []
            for (name, version), info in zip(packages, infos, strict=True):
                results[f"{name}@{version}"] = info
                if info is None:
                    pending.append((name, version))

        if pending and self._audit is not None:
            grouped: dict[str, list[str]] = {}
            for name, version in pending:
                grouped.setdefault(name, []).append(version)
            results.update(await self._audit.check_packages(grouped))

        return {
            key: info if info is not None else SecurityInfo.empty()
            for key, info in results.items()
        }
