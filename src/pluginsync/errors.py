"""Error taxonomy for pluginsync.

Only RemoteQueryFailure raised while listing candidates is allowed to abort a
whole sync run. Everything else is caught per entry by the import pipeline.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for pluginsync errors."""
    pass


class RemoteQueryFailure(SyncError):
    """Transport or process error while talking to the catalog source."""
    pass


class ValidationFailure(SyncError):
    """Malformed or incomplete per-entry metadata."""
    pass


class DuplicateEntry(SyncError):
    """The slug is already present in the store. Recorded as a skip."""

    def __init__(self, slug: str):
        super().__init__(f"Entry '{slug}' already exists")
        self.slug = slug


class PersistenceFailure(SyncError):
    """Transaction or write error in the relational store."""
    pass


class CacheFailure(SyncError):
    """Unusable cache key or I/O error in the raw cache."""
    pass
