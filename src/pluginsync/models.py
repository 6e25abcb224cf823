"""Record types written to and read from the relational store."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


class EntryStatus(str, Enum):
    """Well-known entry states. Other error codes are stored verbatim."""
    OPEN = "open"
    CLOSED = "closed"


# Source type tag for every stored download artifact.
FILE_TYPE_REMOTE_CDN = "remote-cdn"


@dataclass
class EntryFile:
    """One distributable version artifact of an entry."""
    id: str
    entry_id: str
    file_url: str
    version: str
    type: str = FILE_TYPE_REMOTE_CDN

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "entry_id": self.entry_id,
            "file_url": self.file_url,
            "type": self.type,
            "version": self.version,
        }


@dataclass
class CatalogEntry:
    """Normalized catalog entry."""
    id: str
    name: str
    slug: str
    status: str
    pulled_at: str
    current_version: Optional[str] = None
    updated: Optional[str] = None
    closed_at: Optional[str] = None
    files: List[EntryFile] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status == EntryStatus.OPEN.value

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "current_version": self.current_version,
            "status": self.status,
            "updated": self.updated,
            "closed_at": self.closed_at,
            "pulled_at": self.pulled_at,
        }


@dataclass
class RevisionRecord:
    """Last revision successfully processed for an action."""
    id: int
    action: str
    revision: int

    @classmethod
    def from_row(cls, row) -> "RevisionRecord":
        return cls(id=int(row["id"]), action=row["action"], revision=int(row["revision"]))


@dataclass
class BaselineSnapshot:
    """Previously persisted view of every known slug.

    Only used to answer "have we ever seen this slug". The sync engine reads it
    and never changes it; see ``pluginsync.catalog.sync.preserve_baseline``.
    """
    revision: Optional[int] = None
    entries: Dict[str, List[str]] = field(default_factory=dict)

    def __contains__(self, slug: str) -> bool:
        return slug in self.entries

    def to_dict(self) -> dict:
        return {
            "meta": {"my_revision": self.revision},
            "plugins": self.entries,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BaselineSnapshot":
        meta = data.get("meta") or {}
        plugins = data.get("plugins") or {}
        try:
            revision = int(meta["my_revision"])
        except (KeyError, TypeError, ValueError):
            revision = None
        return cls(
            revision=revision,
            entries={str(slug): list(versions or []) for slug, versions in plugins.items()},
        )

    @classmethod
    def load(cls, path: Path) -> "BaselineSnapshot":
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls.from_dict(data)

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=4), encoding="utf-8")
        return path


@dataclass
class ImportReport:
    """Outcome of an import run."""
    imported: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.imported) + len(self.skipped) + len(self.failed)

    def add_failure(self, slug: str, message: str) -> None:
        """Record a failure; repeated failures for one slug keep every message."""
        if slug in self.errors:
            self.errors[slug] = f"{self.errors[slug]}; {message}"
            return
        self.failed.append(slug)
        self.errors[slug] = message

    def to_dict(self) -> dict:
        return {
            "imported": len(self.imported),
            "skipped": len(self.skipped),
            "failed": len(self.failed),
        }
