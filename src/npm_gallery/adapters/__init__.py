"""Concrete source adapters and their transformers."""

from npm_gallery.adapters.libraries_io import LibrariesIoSourceAdapter
from npm_gallery.adapters.libraries_io_transformer import LibrariesIoTransformer
from npm_gallery.adapters.npm_base import NpmBaseAdapter, detect_package_manager
from npm_gallery.adapters.npm_registry import NpmRegistrySourceAdapter
from npm_gallery.adapters.npm_transformer import NpmTransformer
from npm_gallery.adapters.npms import NpmsSourceAdapter
from npm_gallery.adapters.npms_transformer import NpmsTransformer
from npm_gallery.adapters.nuget import NuGetSourceAdapter
from npm_gallery.adapters.nuget_transformer import NuGetTransformer
from npm_gallery.adapters.sonatype import SonatypeSourceAdapter
from npm_gallery.adapters.sonatype_transformer import SonatypeTransformer

__all__ = [
    "LibrariesIoSourceAdapter",
    "LibrariesIoTransformer",
    "NpmBaseAdapter",
    "NpmRegistrySourceAdapter",
    "NpmTransformer",
    "NpmsSourceAdapter",
    "NpmsTransformer",
    "NuGetSourceAdapter",
    "NuGetTransformer",
    "SonatypeSourceAdapter",
    "SonatypeTransformer",
    "detect_package_manager",
]
