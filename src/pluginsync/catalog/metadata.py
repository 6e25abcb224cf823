"""Cached per-plugin metadata fetch."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from ..config import DEFAULT_CACHE_TTL_S
from ..errors import CacheFailure, ValidationFailure
from .cache import CacheItem, CacheStore, metadata_key
from .client import CatalogClient


def extract_versions(data: Dict[str, Any]) -> Dict[str, str]:
    """Version -> download URL map for a metadata document, without trunk."""
    versions = data.get("versions")
    result: Dict[str, str] = {}
    if isinstance(versions, dict):
        result = {str(version): str(url) for version, url in versions.items()}
    result.pop("trunk", None)

    if not result and data.get("version") and data.get("download_link"):
        result = {str(data["version"]): str(data["download_link"])}
    return result


class MetadataFetcher:
    """Return plugin metadata, from the raw cache when fresh enough."""

    def __init__(self, client: CatalogClient, cache: CacheStore, ttl_s: float = DEFAULT_CACHE_TTL_S):
        self.client = client
        self.cache = cache
        self.ttl_s = ttl_s
        self.logger = logging.getLogger("MetadataFetcher")

    def fetch(self, slug: str) -> Dict[str, Any]:
        key = metadata_key(slug)
        item = self._cached(slug, key)
        if item is not None:
            self.logger.debug(f"Using cached metadata for {slug}")
            try:
                text = item.text()
            except UnicodeDecodeError as e:
                raise ValidationFailure(f"Cached metadata for '{slug}' is not UTF-8: {e}")
            return self._decode(slug, text)

        response = self.client.fetch_entry_metadata(slug)
        if response.not_found:
            # The 404 body describes a closed plugin; keep it as-is.
            self.logger.info(f"Metadata for {slug} returned 404, caching body")
            self._store(slug, key, response.body.encode("utf-8"))
            return self._decode(slug, response.body)

        data = self._decode(slug, response.body)
        self._store(slug, key, json.dumps(data, indent=4).encode("utf-8"))
        return data

    def _cached(self, slug: str, key: str) -> Optional[CacheItem]:
        try:
            if not self.cache.is_fresh(key, self.ttl_s):
                return None
            return self.cache.get(key)
        except (OSError, ValueError) as e:
            raise CacheFailure(f"Cannot read cached metadata for '{slug}': {e}")

    def _store(self, slug: str, key: str, data: bytes) -> None:
        try:
            self.cache.put(key, data)
        except (OSError, ValueError) as e:
            raise CacheFailure(f"Cannot cache metadata for '{slug}': {e}")

    def versions_for(self, slug: str) -> Dict[str, str]:
        return extract_versions(self.fetch(slug))

    def __call__(self, slug: str) -> Dict[str, Any]:
        return self.fetch(slug)

    @staticmethod
    def _decode(slug: str, body: str) -> Dict[str, Any]:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ValidationFailure(f"Metadata for '{slug}' is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise ValidationFailure(f"Metadata for '{slug}' is not a JSON object")
        return data
