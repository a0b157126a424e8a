"""Configuration loader for NPM Gallery.

This module loads `.npmgallery.yaml`, expands environment variables and
validates the result into a `GalleryConfig`.

Example:
    config = load_config()
    npm_override = config.sources.get(ProjectType.NPM)
    if npm_override and npm_override.primary:
        print(f"npm primary source: {npm_override.primary.value}")

Example file:
    sources:
      npm:
        primary: npms-io
        fallbacks: [npm-registry]
    http:
      timeout_seconds: 10
    libraries_io:
      api_key: ${LIBRARIES_IO_API_KEY}
    package_manager: pnpm
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from npm_gallery.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_MATCHES_PER_PATTERN,
    DEFAULT_USER_AGENT,
    LIBRARIES_IO_API_KEY_ENV,
)
from npm_gallery.exceptions import ConfigError
from npm_gallery.models import PackageManager, ProjectType, SourceConfigOverride


class CacheConfig(BaseModel):
    """Response cache configuration shared by the HTTP clients."""

    ttl_seconds: int = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        description="Default cache entry TTL in seconds",
    )
    max_size: int = Field(default=DEFAULT_CACHE_MAX_SIZE, description="Maximum entries per client")


class HttpConfig(BaseModel):
    timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        description="Per-request timeout for upstream registries",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent header")


class DetectionConfig(BaseModel):
    exclude_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS),
        description="Directory names never descended into while scanning",
    )
    max_matches_per_pattern: int = Field(
        default=DEFAULT_MAX_MATCHES_PER_PATTERN,
        ge=1,
        description="Stop scanning a marker pattern after this many hits",
    )


class LibrariesIoConfig(BaseModel):
    api_key: str | None = Field(
        default_factory=lambda: os.environ.get(LIBRARIES_IO_API_KEY_ENV) or None,
        description=f"Libraries.io API key; defaults to ${LIBRARIES_IO_API_KEY_ENV}",
    )


class GalleryConfig(BaseModel):
    """Root configuration.

    Attributes:
        sources: Partial per-project-type overrides layered onto the defaults.
        cache: Response cache settings.
        http: Upstream HTTP client settings.
        detection: Workspace scan settings.
        libraries_io: Libraries.io API settings.
        package_manager: Default npm-family package manager for install commands.
    """

    sources: dict[ProjectType, SourceConfigOverride] = Field(default_factory=dict)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    libraries_io: LibrariesIoConfig = Field(default_factory=LibrariesIoConfig)
    package_manager: PackageManager = "npm"


# Pattern to match ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports both ${VAR_NAME} and $VAR_NAME. Unset variables are left as-is.

    Args:
        value: The value to expand (str, dict, list, or primitive).

    Returns:
        The value with environment variables expanded.
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    else:
        return value


def load_config(config_path: Path | None = None) -> GalleryConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to config file. If None, searches for .npmgallery.yaml
                    in the current directory and its parents.

    Returns:
        Loaded configuration, or defaults when no file exists.

    Raises:
        ConfigError: If the file is not valid YAML or fails validation.
    """
    if config_path is None:
        config_path = find_config_file()

    if config_path is None or not config_path.exists():
        return GalleryConfig()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}", {"error": str(e)}) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {config_path}")

    data = expand_env_vars(data)

    try:
        return GalleryConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}",
            {"errors": e.error_count(), "first": e.errors()[0]["msg"]},
        ) from e


def find_config_file(start: Path | None = None) -> Path | None:
    """Search for .npmgallery.yaml in `start` (default: cwd) and its parents.

    Returns:
        Path to the config file if found, None otherwise.
    """
    current = start or Path.cwd()

    for directory in [current, *current.parents]:
        config_file = directory / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

    return None
