"""Capability taxonomy for source adapters.

Each adapter declares a static set of `Capability` tags. Optional
operations check membership before doing any work and raise
`CapabilityNotSupportedError` when the tag is absent, so callers can tell
"this source never offers X" apart from "X failed".
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Capability(str, Enum):
    """Named adapter behaviour."""

    # Core: every adapter supports these
    SEARCH = "search"
    PACKAGE_INFO = "packageInfo"
    PACKAGE_DETAILS = "packageDetails"
    VERSIONS = "versions"

    # Optional
    INSTALLATION = "installation"
    COPY = "copy"
    SUGGESTIONS = "suggestions"
    DEPENDENCIES = "dependencies"
    DOCUMENTATION = "documentation"
    SECURITY = "security"
    BUNDLE_SIZE = "bundleSize"
    DOWNLOAD_STATS = "downloadStats"
    QUALITY_SCORE = "qualityScore"
    DEPENDENTS = "dependents"
    REQUIREMENTS = "requirements"


CORE_CAPABILITIES: frozenset[Capability] = frozenset(
    {
        Capability.SEARCH,
        Capability.PACKAGE_INFO,
        Capability.PACKAGE_DETAILS,
        Capability.VERSIONS,
    }
)


class CapabilitySupport(BaseModel):
    """Whether (and why not) an adapter supports a capability."""

    capability: Capability
    supported: bool
    reason: str | None = None
