"""Shared fixtures for pluginsync tests."""

import time
from typing import Dict, Optional

import pytest

from pluginsync.catalog.cache import CacheItem
from pluginsync.store import Database


class MemoryCacheStore:
    """In-memory CacheStore. ``ages`` lets tests age individual keys."""

    def __init__(self):
        self.items: Dict[str, CacheItem] = {}

    def get(self, key: str) -> Optional[CacheItem]:
        return self.items.get(key)

    def put(self, key: str, data: bytes) -> None:
        self.items[key] = CacheItem(data=data, mtime=time.time())

    def is_fresh(self, key: str, ttl_s: float) -> bool:
        item = self.items.get(key)
        return item is not None and item.mtime > time.time() - ttl_s

    def age(self, key: str, seconds: float) -> None:
        item = self.items[key]
        self.items[key] = CacheItem(data=item.data, mtime=item.mtime - seconds)


@pytest.fixture
def cache():
    return MemoryCacheStore()


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "pluginsync.db")
    database.init_schema()
    yield database
    database.close()
