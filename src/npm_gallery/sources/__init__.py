"""Source layer: adapter interface, registry, detection, config and selection."""

from npm_gallery.sources.base import SourceAdapter, SourceTransformer
from npm_gallery.sources.capabilities import CORE_CAPABILITIES, Capability, CapabilitySupport
from npm_gallery.sources.detector import ProjectDetector, detect_project_type_for_file
from npm_gallery.sources.registry import SourceRegistry
from npm_gallery.sources.selector import Attempt, Failure, SourceSelector, Success
from npm_gallery.sources.source_config import DEFAULT_SOURCE_CONFIG, SourceConfigManager

__all__ = [
    "CORE_CAPABILITIES",
    "DEFAULT_SOURCE_CONFIG",
    "Attempt",
    "Capability",
    "CapabilitySupport",
    "Failure",
    "ProjectDetector",
    "SourceAdapter",
    "SourceConfigManager",
    "SourceRegistry",
    "SourceSelector",
    "SourceTransformer",
    "Success",
    "detect_project_type_for_file",
]
