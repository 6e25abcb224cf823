"""Import pipeline: write plugin metadata into the relational store.

Each plugin is imported inside its own transaction. A plugin that already
exists is skipped, a closed plugin gets a status-only row, an open plugin gets
a row plus one file row per version. Failures are recorded and the batch moves
on; nothing raised for a single plugin escapes ``import_all``.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

from ..errors import DuplicateEntry, PersistenceFailure, SyncError, ValidationFailure
from ..models import CatalogEntry, EntryFile, EntryStatus, ImportReport
from ..store import Database
from .metadata import extract_versions

MetadataSource = Callable[[str], Dict[str, Any]]

_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %I:%M%p",     # 2024-01-15 3:42pm (after stripping the zone)
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def parse_timestamp(text: str) -> datetime:
    """Parse a catalog timestamp into an aware UTC datetime.

    Accepts ISO-8601 and the API's ``2024-01-15 3:42pm GMT`` form.
    Raises ValueError for anything else.
    """
    value = (text or "").strip()
    if not value:
        raise ValueError("empty timestamp")

    for suffix in (" GMT", " UTC", "Z"):
        if value.endswith(suffix):
            value = value[: -len(suffix)].strip()
            break

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(value.upper() if "%p" in fmt else value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        raise ValueError(f"unrecognised timestamp: {text!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class ImportPipeline:
    """Transactional, per-entry import of plugin metadata."""

    def __init__(self, db: Database):
        self.db = db
        self.logger = logging.getLogger("ImportPipeline")

    # --- Batch entry points ---

    def import_all(self, candidates: Iterable[str], source: MetadataSource) -> ImportReport:
        """Fetch and import every candidate slug."""
        report = ImportReport()
        for slug in candidates:
            try:
                metadata = source(slug)
            except (SyncError, OSError, ValueError) as e:
                self.logger.error(f"Unable to fetch metadata for {slug}: {e}")
                report.add_failure(slug, str(e))
                continue
            self._import_one(metadata, slug, _now(), report)

        self._log_summary(report)
        return report

    def import_directory(self, directory: Path) -> ImportReport:
        """Import every cached ``*.json`` metadata file in ``directory``."""
        report = ImportReport()
        files = sorted(Path(directory).glob("*.json"))
        self.logger.info(f"Importing {len(files)} files from {directory}")

        for path in files:
            fallback_slug = path.stem
            try:
                metadata = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                self.logger.error(f"Skipping; unable to read {path.name}: {e}")
                report.add_failure(fallback_slug, str(e))
                continue
            if not isinstance(metadata, dict):
                self.logger.error(f"Skipping; {path.name} is not a JSON object")
                report.add_failure(fallback_slug, "metadata is not a JSON object")
                continue

            pulled_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()
            self._import_one(metadata, fallback_slug, pulled_at, report)

        self._log_summary(report)
        return report

    # --- Single entry ---

    def import_entry(self, metadata: Dict[str, Any], fallback_slug: str = "", pulled_at: Optional[str] = None) -> CatalogEntry:
        """Import one metadata document inside its own transaction.

        Raises DuplicateEntry, ValidationFailure or PersistenceFailure; the
        transaction is rolled back in every one of those cases.
        """
        slug = str(metadata.get("slug") or fallback_slug)
        if not slug:
            raise ValidationFailure("metadata has no slug")

        with self.db.transaction():
            if self.exists(slug):
                raise DuplicateEntry(slug)
            entry = self.build_entry(metadata, slug, pulled_at or _now())
            self._write(entry)
        return entry

    def exists(self, slug: str) -> bool:
        row = self.db.query_one("SELECT id FROM entries WHERE slug = :slug", {"slug": slug})
        return row is not None

    def build_entry(self, metadata: Dict[str, Any], slug: str, pulled_at: str) -> CatalogEntry:
        """Classify ``metadata`` and build the rows to write."""
        if "error" in metadata:
            return self._build_closed(metadata, slug, pulled_at)
        return self._build_open(metadata, pulled_at)

    # --- Internals ---

    def _import_one(self, metadata: Dict[str, Any], fallback_slug: str, pulled_at: str, report: ImportReport) -> None:
        slug = str(metadata.get("slug") or fallback_slug)
        try:
            entry = self.import_entry(metadata, fallback_slug=fallback_slug, pulled_at=pulled_at)
        except DuplicateEntry:
            self.logger.info(f"Skipping plugin {slug} as it exists in DB already")
            report.skipped.append(slug)
        except ValidationFailure as e:
            self.logger.error(f"Unable to import plugin {slug}: {e}")
            report.add_failure(slug, str(e))
        except PersistenceFailure as e:
            self.logger.error(f"Unable to write plugin {slug}: {e}")
            report.add_failure(slug, str(e))
        else:
            report.imported.append(entry.slug)

    def _build_closed(self, metadata: Dict[str, Any], slug: str, pulled_at: str) -> CatalogEntry:
        error = str(metadata.get("error"))
        if error != EntryStatus.CLOSED.value:
            raise ValidationFailure(f"metadata reports error '{error}'")

        closed_at = _now()
        closed_date = metadata.get("closed_date")
        if closed_date:
            try:
                closed_at = parse_timestamp(str(closed_date)).isoformat()
            except ValueError:
                self.logger.debug(f"Unparseable closed_date for {slug}: {closed_date!r}")

        return CatalogEntry(
            id=_new_id(),
            name=str(metadata.get("name") or slug),
            slug=slug,
            status=EntryStatus.CLOSED.value,
            updated=closed_at,
            closed_at=closed_at,
            pulled_at=pulled_at,
        )

    def _build_open(self, metadata: Dict[str, Any], pulled_at: str) -> CatalogEntry:
        missing = [key for key in ("name", "slug", "version") if not metadata.get(key)]
        if missing:
            raise ValidationFailure(f"metadata is missing {', '.join(missing)}")

        versions = extract_versions(metadata)
        if not versions:
            raise ValidationFailure("metadata has no versions and no download_link")

        updated = None
        if metadata.get("last_updated"):
            try:
                updated = parse_timestamp(str(metadata["last_updated"])).isoformat()
            except ValueError as e:
                raise ValidationFailure(f"bad last_updated: {e}")

        entry_id = _new_id()
        return CatalogEntry(
            id=entry_id,
            name=str(metadata["name"]),
            slug=str(metadata["slug"]),
            status=EntryStatus.OPEN.value,
            current_version=str(metadata["version"]),
            updated=updated,
            pulled_at=pulled_at,
            files=[
                EntryFile(id=_new_id(), entry_id=entry_id, file_url=url, version=version)
                for version, url in versions.items()
            ],
        )

    def _write(self, entry: CatalogEntry) -> None:
        if entry.is_open:
            self.logger.info(f"Writing OPEN plugin {entry.slug} with {len(entry.files)} version(s)")
        else:
            self.logger.info(f"Writing {entry.status.upper()} plugin {entry.slug}")

        self.db.execute(
            "INSERT INTO entries (id, name, slug, current_version, status, updated, closed_at, pulled_at) "
            "VALUES (:id, :name, :slug, :current_version, :status, :updated, :closed_at, :pulled_at)",
            entry.to_row(),
        )
        for entry_file in entry.files:
            self.db.execute(
                "INSERT INTO entry_files (id, entry_id, file_url, type, version) "
                "VALUES (:id, :entry_id, :file_url, :type, :version)",
                entry_file.to_row(),
            )

    def _log_summary(self, report: ImportReport) -> None:
        self.logger.info(
            f"Import finished: {len(report.imported)} imported, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
