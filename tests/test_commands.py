"""Tests for the CLI commands."""

import argparse
import json
from unittest.mock import MagicMock, patch

import pytest

from pluginsync.catalog.client import CatalogClient, MetadataResponse
from pluginsync.catalog.commands import (
    cmd_candidates,
    cmd_import_meta,
    cmd_revisions,
    cmd_sync,
)
from pluginsync.cli import build_parser
from pluginsync.config import Settings
from pluginsync.errors import RemoteQueryFailure
from pluginsync.models import BaselineSnapshot
from pluginsync.store import Database


LISTING = '<li><a href="akismet/">akismet/</a></li>\n<li><a href="gone/">gone/</a></li>\n'

AKISMET = {
    "name": "Akismet",
    "slug": "akismet",
    "version": "5.3",
    "last_updated": "2024-01-15 3:42pm GMT",
    "versions": {"5.2": "https://x/5.2.zip", "5.3": "https://x/5.3.zip", "trunk": "https://x/t.zip"},
}


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    Settings(data_dir=str(tmp_path / "data")).save(path)
    with patch.dict("os.environ", {}, clear=True):
        yield path


@pytest.fixture
def mock_client():
    client = MagicMock(spec=CatalogClient)
    client.fetch_listing_page.return_value = LISTING
    client.fetch_head_log.return_value = "r900 | a | b\n"
    client.fetch_change_log.return_value = "r901 | a | b\n   M /akismet/trunk/readme.txt\n"

    def fetch_entry_metadata(slug):
        if slug == "akismet":
            return MetadataResponse(slug=slug, status_code=200, body=json.dumps(AKISMET))
        return MetadataResponse(slug=slug, status_code=404, body='{"error": "closed", "name": "Gone", "slug": "gone"}')

    client.fetch_entry_metadata.side_effect = fetch_entry_metadata
    with patch("pluginsync.catalog.commands.CatalogClient") as cls:
        cls.from_settings.return_value = client
        yield client


def _args(config_path, **kwargs):
    return argparse.Namespace(config=str(config_path), **kwargs)


def _settings(config_path):
    return Settings.load(config_path)


class TestImportMeta:
    """Tests for the import-meta command."""

    def test_imports_directory(self, config_path, tmp_path):
        """Test files are imported and exit code is 0."""
        meta_dir = tmp_path / "meta"
        meta_dir.mkdir()
        (meta_dir / "akismet.json").write_text(json.dumps(AKISMET), encoding="utf-8")
        (meta_dir / "bad.json").write_text(json.dumps({"slug": "bad", "error": "someOtherCode"}), encoding="utf-8")

        assert cmd_import_meta(_args(config_path, dir=str(meta_dir))) == 0

        with Database(_settings(config_path).database_path) as db:
            rows = db.query_all("SELECT slug FROM entries")
        assert [row["slug"] for row in rows] == ["akismet"]

    def test_missing_directory(self, config_path, tmp_path):
        """Test a missing directory is not fatal."""
        assert cmd_import_meta(_args(config_path, dir=str(tmp_path / "nope"))) == 0


class TestSyncCommand:
    """Tests for the sync command."""

    def test_cold_sync(self, config_path, mock_client):
        """Test a first sync imports everything and records HEAD."""
        assert cmd_sync(_args(config_path, action="default", plugins=None, dry_run=False)) == 0

        settings = _settings(config_path)
        with Database(settings.database_path) as db:
            entries = {row["slug"]: row["status"] for row in db.query_all("SELECT slug, status FROM entries")}
            revision = db.query_one("SELECT revision FROM revisions WHERE action = 'default'")["revision"]
            files = db.query_all("SELECT version FROM entry_files ORDER BY version")

        assert entries == {"akismet": "open", "gone": "closed"}
        assert revision == 900
        assert [f["version"] for f in files] == ["5.2", "5.3"]

        baseline = BaselineSnapshot.load(settings.baseline_path)
        assert baseline.revision == 900
        assert set(baseline.entries) == {"akismet", "gone"}

    def test_warm_sync_uses_diff(self, config_path, mock_client):
        """Test a second sync diffs from the recorded revision."""
        cmd_sync(_args(config_path, action="default", plugins=None, dry_run=False))
        mock_client.fetch_head_log.return_value = "r901 | a | b\n"

        assert cmd_sync(_args(config_path, action="default", plugins=None, dry_run=False)) == 0

        mock_client.fetch_change_log.assert_called_once_with(901, "HEAD")
        with Database(_settings(config_path).database_path) as db:
            assert db.query_one("SELECT revision FROM revisions")["revision"] == 901

    def test_diff_failure_exits_1(self, config_path, mock_client):
        """Test a failing svn log aborts the run without advancing."""
        cmd_sync(_args(config_path, action="default", plugins=None, dry_run=False))
        mock_client.fetch_head_log.return_value = "r950 | a | b\n"
        mock_client.fetch_change_log.side_effect = RemoteQueryFailure("svn down")

        assert cmd_sync(_args(config_path, action="default", plugins=None, dry_run=False)) == 1
        with Database(_settings(config_path).database_path) as db:
            assert db.query_one("SELECT revision FROM revisions")["revision"] == 900

    def test_dry_run_writes_nothing(self, config_path, mock_client):
        """Test --dry-run only lists."""
        assert cmd_sync(_args(config_path, action="default", plugins="akismet", dry_run=True)) == 0
        mock_client.fetch_entry_metadata.assert_not_called()
        with Database(_settings(config_path).database_path) as db:
            assert db.query_all("SELECT * FROM revisions") == []


class TestCandidatesAndRevisions:
    """Tests for the read-only commands."""

    def test_candidates(self, config_path, mock_client):
        """Test candidates lists the filtered listing."""
        assert cmd_candidates(_args(config_path, action="default", plugins="gone")) == 0
        mock_client.fetch_listing_page.assert_called_once()

    def test_candidates_failure(self, config_path, mock_client):
        """Test listing failures exit 1."""
        mock_client.fetch_listing_page.side_effect = RemoteQueryFailure("down")
        assert cmd_candidates(_args(config_path, action="default", plugins=None)) == 1

    def test_revisions_empty(self, config_path):
        """Test an empty ledger is reported."""
        assert cmd_revisions(_args(config_path)) == 0


class TestParser:
    """Tests for the argument parser."""

    def test_sync_arguments(self):
        """Test sync options are parsed."""
        args = build_parser().parse_args(["-v", "sync", "--action", "security", "--plugins", "a,b", "--dry-run"])
        assert args.verbose is True
        assert args.action == "security"
        assert args.plugins == "a,b"
        assert args.dry_run is True
        assert args.func is cmd_sync

    def test_import_meta_default_dir(self):
        """Test import-meta defaults to the cache directory."""
        args = build_parser().parse_args(["import-meta"])
        assert args.dir is None
        assert args.func is cmd_import_meta
