"""Catalog Sync Engine for pluginsync.

Decides, per sync action, which plugins need to be (re-)imported:
- cold pull: no known revision, every plugin in the directory listing
- warm diff: plugins touched by ``svn log`` since the recorded revision,
  merged with plugins missing from the baseline and explicitly requested ones
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config import DEFAULT_CACHE_TTL_S
from ..errors import RemoteQueryFailure
from ..models import BaselineSnapshot
from .cache import CHANGELOG_KEY, LISTING_KEY, CacheStore
from .changelog import ChangeLogParser, parse_head_revision, touched_slugs
from .client import CatalogClient, parse_listing
from .ledger import RevisionLedger

Candidates = Dict[str, List[str]]


class SyncEngine:
    """Revision-tracked candidate computation."""

    def __init__(
        self,
        client: CatalogClient,
        ledger: RevisionLedger,
        cache: CacheStore,
        baseline: Optional[BaselineSnapshot] = None,
        ttl_s: float = DEFAULT_CACHE_TTL_S,
    ):
        self.client = client
        self.ledger = ledger
        self.cache = cache
        self.baseline = baseline or BaselineSnapshot()
        self.ttl_s = ttl_s
        self.logger = logging.getLogger("SyncEngine")

        # HEAD revision as last identified from the repository.
        self.current_revision: Optional[int] = None
        # action -> revision observed by the last successful listing
        self._observed: Dict[str, int] = {}

    # --- Public API ---

    def list_candidates(self, action: str, filter: Optional[Iterable[str]] = None) -> Candidates:
        """Return slug -> known versions for everything ``action`` should import.

        Raises RemoteQueryFailure if the listing or change log cannot be read.
        """
        allow_list = list(filter or [])
        self._observed.pop(action, None)

        last_revision = self.ledger.revision_for(action)
        if last_revision is None:
            self.logger.info(f"No revision recorded for '{action}', pulling whole plugin list")
            candidates = self.filter(self.pull_whole_listing(), allow_list)
            self._observed[action] = self.identify_current_revision()
            return candidates

        return self.filter(self._plugins_to_update(action, last_revision, allow_list), allow_list)

    def record_revision(self, action: str) -> bool:
        """Persist the revision observed for ``action``.

        Returns False, writing nothing, when the last listing observed no new
        revision (the no-op fast path) or the action was never listed.
        """
        revision = self._observed.pop(action, None)
        if revision is None:
            self.logger.info(f"No new revision observed for '{action}', ledger unchanged")
            return False
        self.ledger.record(action, revision)
        return True

    def observed_revision(self, action: str) -> Optional[int]:
        return self._observed.get(action)

    def filter(self, candidates: Candidates, allow_list: Optional[Iterable[str]] = None) -> Candidates:
        """Reduce ``candidates`` to the slugs in ``allow_list``, in its order."""
        allow_list = list(allow_list or [])
        if not allow_list:
            return candidates

        filtered: Candidates = {}
        for slug in allow_list:
            if slug in candidates:
                filtered[slug] = candidates[slug]
        return filtered

    def identify_current_revision(self, force: bool = False) -> int:
        """Read the repository HEAD revision, from cache when fresh."""
        cached = None
        if not force and self.cache.is_fresh(CHANGELOG_KEY, self.ttl_s):
            cached = self.cache.get(CHANGELOG_KEY)

        if cached is not None:
            output = cached.text()
        else:
            output = self.client.fetch_head_log()
            self.cache.put(CHANGELOG_KEY, output.encode("utf-8"))

        revision = parse_head_revision(output)
        if revision is None:
            raise RemoteQueryFailure("Unable to identify current revision from svn log output")

        self.current_revision = revision
        return revision

    def pull_whole_listing(self) -> Candidates:
        """Every slug in the directory listing, mapped to no known versions."""
        cached = None
        if self.cache.is_fresh(LISTING_KEY, self.ttl_s):
            cached = self.cache.get(LISTING_KEY)

        if cached is not None:
            page = cached.text()
        else:
            page = self.client.fetch_listing_page()
            self.cache.put(LISTING_KEY, page.encode("utf-8"))

        return {slug: [] for slug in parse_listing(page)}

    # --- Internals ---

    def _plugins_to_update(self, action: str, last_revision: int, explicitly_requested: List[str]) -> Candidates:
        if self.current_revision is not None and self.current_revision == self.baseline.revision:
            self.logger.info(f"Revision {self.current_revision} matches baseline, skipping svn log")
            return self._merge({}, explicitly_requested)

        output = self.client.fetch_change_log(last_revision + 1, "HEAD")

        parser = ChangeLogParser()
        records = parser.parse(output.splitlines())
        touched = {slug: [] for slug in touched_slugs(records)}
        self.logger.info(
            f"svn log r{last_revision + 1}:HEAD touched {len(touched)} plugin(s) "
            f"in {len(records)} change(s)"
        )

        observed = parser.highest_revision
        self._observed[action] = max(observed, last_revision) if observed is not None else last_revision

        return self._merge(touched, explicitly_requested)

    def _merge(self, plugins_to_update: Candidates, explicitly_requested: List[str]) -> Candidates:
        """Add first-seen plugins and explicit requests to the diff result."""
        merged = dict(plugins_to_update)

        for slug in self.pull_whole_listing():
            if slug not in self.baseline:
                merged[slug] = []

        for slug in explicitly_requested:
            merged[slug] = []

        return merged


def preserve_baseline(
    baseline: BaselineSnapshot,
    plugins: Candidates,
    revision: Optional[int],
    path: Path,
) -> BaselineSnapshot:
    """Write a new baseline combining ``baseline`` with ``plugins``.

    ``baseline`` itself is left untouched; the new snapshot is returned.
    """
    entries = dict(baseline.entries)
    entries.update(plugins)
    snapshot = BaselineSnapshot(
        revision=revision if revision is not None else baseline.revision,
        entries=entries,
    )
    snapshot.save(path)
    return snapshot
