"""Custom exceptions for NPM Gallery.

This module defines the hierarchy of exceptions used throughout the package.
All exceptions inherit from GalleryError, so callers can catch every
package-related failure with one except clause.

Exception Hierarchy:
    GalleryError (base)
    ├── ConfigError - Configuration loading/validation failures
    ├── SourceError (base for adapter failures)
    │   ├── CapabilityNotSupportedError - Adapter never offers this feature
    │   ├── PackageNotFoundError - Name does not exist upstream
    │   └── InvalidCoordinateError - Malformed ecosystem-specific name
    ├── ApiError - Upstream HTTP failures
    ├── NoSourceAvailableError - Registry holds no usable adapter
    └── AllSourcesFailedError - Every source in the fallback chain failed
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from npm_gallery.sources.capabilities import Capability


class GalleryError(Exception):
    """Base exception for all NPM Gallery errors.

    Args:
        message: Human-readable error message.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(GalleryError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Invalid YAML syntax in .npmgallery.yaml
        - Unknown project type or source type in an override
    """


class SourceError(GalleryError):
    """Base exception for errors raised by a source adapter.

    Args:
        message: Human-readable error message.
        source_type: Identifier of the adapter that raised the error.
        details: Optional dictionary with additional error context.
    """

    def __init__(
        self,
        message: str,
        source_type: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source_type = source_type

    def __str__(self) -> str:
        base = f"[{self.source_type}] {self.message}"
        if self.details:
            return f"{base} | Details: {self.details}"
        return base


class CapabilityNotSupportedError(SourceError):
    """Raised when an optional operation is invoked on an adapter that does not declare it.

    This is a "feature absent" signal, never a transient failure. Callers
    that reach optional capabilities should treat it as "unavailable for
    the current source".

    Args:
        capability: The capability that was requested.
        source_type: The adapter that lacks it.
        reason: Optional explanation appended to the message.
    """

    def __init__(
        self,
        capability: Capability,
        source_type: str,
        reason: str | None = None,
    ) -> None:
        message = f"Capability '{capability.value}' is not supported by source '{source_type}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, source_type)
        self.capability = capability
        self.reason = reason

    def __str__(self) -> str:
        return self.message


class PackageNotFoundError(SourceError):
    """Raised when a package name does not exist upstream."""

    def __init__(self, name: str, source_type: str) -> None:
        super().__init__(f"Package not found: {name}", source_type, {"package": name})
        self.package_name = name


class InvalidCoordinateError(SourceError):
    """Raised when a package identifier does not match the ecosystem's format.

    Examples:
        - Maven name without a groupId:artifactId separator
    """


class ApiErrorType(str, Enum):
    """Classification of upstream HTTP failures."""

    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    TIMEOUT = "TIMEOUT"


class ApiError(GalleryError):
    """Raised when an upstream registry API call fails.

    Args:
        message: Human-readable error message.
        client_name: Name of the upstream client (e.g., "npm-registry").
        error_type: Failure classification.
        status_code: HTTP status code, when a response was received.
    """

    def __init__(
        self,
        message: str,
        client_name: str,
        error_type: ApiErrorType,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, {"status_code": status_code} if status_code else None)
        self.client_name = client_name
        self.error_type = error_type
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.client_name}] {self.message}"


class NoSourceAvailableError(GalleryError):
    """Raised when no registered adapter can serve a request.

    Distinct from AllSourcesFailedError: this means misconfiguration
    (empty registry, or nothing registered for the project type).
    """

    def __init__(self, tried: list[str] | None = None) -> None:
        super().__init__(
            "No source adapter available",
            {"tried": tried} if tried else None,
        )
        self.tried = tried or []


class AllSourcesFailedError(GalleryError):
    """Raised when every source in a fallback chain failed.

    The message concatenates every individual failure so no reason is lost.

    Args:
        errors: (source type, exception) pairs in the order they were tried.
    """

    def __init__(self, errors: list[tuple[str, Exception]]) -> None:
        joined = "; ".join(str(error) for _, error in errors)
        super().__init__(f"All sources failed. Errors: {joined}")
        self.errors = errors
