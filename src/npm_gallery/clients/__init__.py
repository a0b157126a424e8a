"""Upstream registry HTTP clients.

Thin async wrappers around each registry API. They return the upstream
JSON shapes unchanged; adapters hand those to their transformers.
"""

from npm_gallery.clients.base import BaseApiClient, encode_package_name
from npm_gallery.clients.bundlephobia import BundlephobiaClient
from npm_gallery.clients.deps_dev import DepsDevClient
from npm_gallery.clients.libraries_io import LibrariesIoClient
from npm_gallery.clients.npm_audit import NpmAuditClient
from npm_gallery.clients.npm_registry import NpmRegistryClient
from npm_gallery.clients.npms import NpmsClient
from npm_gallery.clients.nuget import NuGetClient
from npm_gallery.clients.osv import OsvClient
from npm_gallery.clients.sonatype import SonatypeClient

__all__ = [
    "BaseApiClient",
    "BundlephobiaClient",
    "DepsDevClient",
    "LibrariesIoClient",
    "NpmAuditClient",
    "NpmRegistryClient",
    "NpmsClient",
    "NuGetClient",
    "OsvClient",
    "SonatypeClient",
    "encode_package_name",
]
