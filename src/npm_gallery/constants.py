"""Constants and configuration defaults for NPM Gallery.

This module contains all magic values, default configurations, and constants
used throughout the package. Import from here instead of hardcoding values.
"""

from typing import Final

# =============================================================================
# VERSION
# =============================================================================
VERSION: Final[str] = "0.1.0"

# =============================================================================
# CACHE DEFAULTS
# =============================================================================
DEFAULT_CACHE_TTL_SECONDS: Final[int] = 900  # 15 minutes
DEFAULT_CACHE_MAX_SIZE: Final[int] = 500

CACHE_TTL_SEARCH_SECONDS: Final[int] = 300  # 5 minutes
CACHE_TTL_PACKAGE_INFO_SECONDS: Final[int] = 3600  # 1 hour
CACHE_TTL_VERSIONS_SECONDS: Final[int] = 1800  # 30 minutes
CACHE_TTL_BUNDLE_SIZE_SECONDS: Final[int] = 86400  # 24 hours
CACHE_TTL_DOWNLOADS_SECONDS: Final[int] = 3600  # 1 hour
CACHE_TTL_SECURITY_SECONDS: Final[int] = 900  # 15 minutes

# =============================================================================
# HTTP CLIENT DEFAULTS
# =============================================================================
DEFAULT_HTTP_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_USER_AGENT: Final[str] = f"npm-gallery-core/{VERSION}"

# =============================================================================
# UPSTREAM ENDPOINTS
# =============================================================================
NPM_REGISTRY_URL: Final[str] = "https://registry.npmjs.org"
NPM_DOWNLOADS_URL: Final[str] = "https://api.npmjs.org/downloads"
NPMS_API_URL: Final[str] = "https://api.npms.io/v2"
SONATYPE_URL: Final[str] = "https://search.maven.org"
NUGET_SERVICE_INDEX_URL: Final[str] = "https://api.nuget.org/v3/index.json"
LIBRARIES_IO_API_URL: Final[str] = "https://libraries.io/api"
LIBRARIES_IO_API_KEY_ENV: Final[str] = "LIBRARIES_IO_API_KEY"
OSV_API_URL: Final[str] = "https://api.osv.dev"
BUNDLEPHOBIA_URL: Final[str] = "https://bundlephobia.com/api"
DEPS_DEV_API_URL: Final[str] = "https://api.deps.dev"
DEPS_DEV_WEB_URL: Final[str] = "https://deps.dev"

# =============================================================================
# UPSTREAM LIMITS
# =============================================================================
NPMS_MAX_SEARCH_SIZE: Final[int] = 250
NPMS_MAX_SUGGESTIONS: Final[int] = 25
NPMS_MGET_BATCH_SIZE: Final[int] = 250
NUGET_MAX_TAKE: Final[int] = 1000
LIBRARIES_IO_DEFAULT_PER_PAGE: Final[int] = 30
SONATYPE_MAX_VERSION_ROWS: Final[int] = 1000

# =============================================================================
# SEARCH DEFAULTS
# =============================================================================
DEFAULT_SEARCH_SIZE: Final[int] = 20
DEFAULT_SUGGESTION_LIMIT: Final[int] = 10
MIN_SUGGESTION_QUERY_LENGTH: Final[int] = 2

# =============================================================================
# PROJECT DETECTION
# =============================================================================
DEFAULT_EXCLUDE_DIRS: Final[tuple[str, ...]] = ("node_modules", "bin", "obj")
DEFAULT_MAX_MATCHES_PER_PATTERN: Final[int] = 5

# =============================================================================
# CONFIG FILE
# =============================================================================
CONFIG_FILE_NAME: Final[str] = ".npmgallery.yaml"

# =============================================================================
# LOGGING
# =============================================================================
LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
