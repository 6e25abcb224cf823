"""Raw response cache.

Keys are relative paths such as ``raw-changelog`` or
``plugin-raw-data/akismet.json``. Staleness is decided by the caller through
``is_fresh`` with a TTL in seconds.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

LISTING_KEY = "raw-svn-plugin-list"
CHANGELOG_KEY = "raw-changelog"
METADATA_PREFIX = "plugin-raw-data"


def metadata_key(slug: str) -> str:
    return f"{METADATA_PREFIX}/{slug}.json"


@dataclass
class CacheItem:
    data: bytes
    mtime: float

    def text(self) -> str:
        return self.data.decode("utf-8")


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[CacheItem]: ...

    def put(self, key: str, data: bytes) -> None: ...

    def is_fresh(self, key: str, ttl_s: float) -> bool: ...


class FileCacheStore:
    """Filesystem-backed cache rooted at a directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Cache key escapes cache root: {key}")
        return path

    def get(self, key: str) -> Optional[CacheItem]:
        path = self.path_for(key)
        if not path.is_file():
            return None
        return CacheItem(data=path.read_bytes(), mtime=path.stat().st_mtime)

    def put(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def is_fresh(self, key: str, ttl_s: float) -> bool:
        path = self.path_for(key)
        if not path.is_file():
            return False
        return path.stat().st_mtime > time.time() - ttl_s
