"""Client for the Bundlephobia size API."""

from __future__ import annotations

from typing import Any

from npm_gallery.clients.base import BaseApiClient
from npm_gallery.constants import BUNDLEPHOBIA_URL, CACHE_TTL_BUNDLE_SIZE_SECONDS
from npm_gallery.exceptions import ApiError, ApiErrorType
from npm_gallery.models import BundleSize


class BundlephobiaClient(BaseApiClient):
    name = "bundlephobia"

    def __init__(self, base_url: str = BUNDLEPHOBIA_URL, **kwargs: Any) -> None:
        super().__init__(base_url, **kwargs)

    async def get_size(self, name: str, version: str | None = None) -> BundleSize:
        """Minified/gzipped size of `name@version`.

        Packages Bundlephobia cannot build (NOT_FOUND) report zero sizes.
        """
        spec = f"{name}@{version}" if version else name
        try:
            data = await self._get_json(
                "/size",
                params={"package": spec},
                cache_key=f"size:{spec}",
                ttl=CACHE_TTL_BUNDLE_SIZE_SECONDS,
            )
        except ApiError as e:
            if e.error_type is ApiErrorType.NOT_FOUND:
                return BundleSize(size=0, gzip=0)
            raise

        return BundleSize(
            size=int(data.get("size") or 0),
            gzip=int(data.get("gzip") or 0),
            dependency_count=data.get("dependencyCount"),
            has_js_module=bool(data.get("hasJSModule")) if "hasJSModule" in data else None,
            has_side_effects=bool(data["hasSideEffects"]) if "hasSideEffects" in data else None,
        )
