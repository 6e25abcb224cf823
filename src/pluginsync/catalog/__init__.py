"""Catalog Module for pluginsync.

Provides the revision-tracked sync of the plugin directory:
- Catalog client (directory listing, metadata API, svn change log)
- Raw response cache
- Revision ledger and sync engine (candidate computation)
- Import pipeline (transactional writes into the store)
"""

from .cache import CacheItem, CacheStore, FileCacheStore
from .changelog import ChangeLogParser, ChangeRecord, parse_change_log
from .client import CatalogClient, MetadataResponse
from .importer import ImportPipeline, parse_timestamp
from .ledger import RevisionLedger
from .metadata import MetadataFetcher, extract_versions
from .sync import SyncEngine, preserve_baseline

__all__ = [
    "CacheItem",
    "CacheStore",
    "FileCacheStore",
    "ChangeLogParser",
    "ChangeRecord",
    "parse_change_log",
    "CatalogClient",
    "MetadataResponse",
    "ImportPipeline",
    "parse_timestamp",
    "RevisionLedger",
    "MetadataFetcher",
    "extract_versions",
    "SyncEngine",
    "preserve_baseline",
]
