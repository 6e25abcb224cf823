"""Revision ledger: last processed repository revision per sync action."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..models import RevisionRecord
from ..store import Database


class RevisionLedger:
    """Repository over the ``revisions`` table.

    Rows are loaded once at construction and kept in step with every write
    made through ``record``.
    """

    def __init__(self, db: Database):
        self.db = db
        self.logger = logging.getLogger("RevisionLedger")
        self._records: Dict[str, RevisionRecord] = {}
        self.load()

    def load(self) -> None:
        rows = self.db.query_all("SELECT id, action, revision FROM revisions")
        self._records = {row["action"]: RevisionRecord.from_row(row) for row in rows}

    def get(self, action: str) -> Optional[RevisionRecord]:
        return self._records.get(action)

    def revision_for(self, action: str) -> Optional[int]:
        record = self._records.get(action)
        return record.revision if record else None

    def all(self) -> List[RevisionRecord]:
        return sorted(self._records.values(), key=lambda r: r.action)

    def record(self, action: str, revision: int) -> RevisionRecord:
        """Insert or update the action's revision. Never moves it backwards."""
        existing = self._records.get(action)

        if existing is None:
            with self.db.transaction():
                row_id = self.db.execute(
                    "INSERT INTO revisions (action, revision) VALUES (:action, :revision)",
                    {"action": action, "revision": revision},
                )
            record = RevisionRecord(id=row_id, action=action, revision=revision)
            self.logger.info(f"Recorded revision {revision} for new action '{action}'")
        else:
            if revision < existing.revision:
                self.logger.warning(
                    f"Ignoring revision {revision} for '{action}'; ledger already at {existing.revision}"
                )
                return existing
            with self.db.transaction():
                self.db.execute(
                    "UPDATE revisions SET revision = :revision WHERE id = :id",
                    {"id": existing.id, "revision": revision},
                )
            record = RevisionRecord(id=existing.id, action=action, revision=revision)
            self.logger.info(f"Advanced '{action}' from revision {existing.revision} to {revision}")

        self._records[action] = record
        return record
