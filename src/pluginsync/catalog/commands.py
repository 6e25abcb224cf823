"""Catalog CLI Commands for pluginsync.

Top-level commands:
- init-db
- import-meta
- candidates
- sync
- revisions
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..config import Settings
from ..errors import RemoteQueryFailure
from ..models import BaselineSnapshot, ImportReport
from ..store import Database
from .cache import FileCacheStore
from .client import CatalogClient
from .importer import ImportPipeline
from .ledger import RevisionLedger
from .metadata import MetadataFetcher
from .sync import SyncEngine, preserve_baseline

console = Console()


def _settings(args: argparse.Namespace) -> Settings:
    config = getattr(args, "config", None)
    return Settings.load(Path(config) if config else None)


def _allow_list(args: argparse.Namespace, settings: Settings) -> List[str]:
    """Slugs from --plugins, falling back to the action's configured list."""
    raw = getattr(args, "plugins", None)
    if raw:
        return [slug.strip() for slug in raw.split(",") if slug.strip()]
    return settings.filter_for(args.action)


def _open_database(settings: Settings) -> Database:
    db = Database(settings.database_path)
    db.init_schema()
    return db


def _build_engine(settings: Settings, db: Database, client: Optional[CatalogClient] = None) -> SyncEngine:
    return SyncEngine(
        client=client or CatalogClient.from_settings(settings),
        ledger=RevisionLedger(db),
        cache=FileCacheStore(settings.cache_dir),
        baseline=BaselineSnapshot.load(settings.baseline_path),
        ttl_s=settings.cache_ttl_s,
    )


def print_report(report: ImportReport) -> None:
    table = Table(title="Import Summary")
    table.add_column("Result", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("[green]Imported[/green]", str(len(report.imported)))
    table.add_row("[yellow]Skipped[/yellow]", str(len(report.skipped)))
    table.add_row("[red]Failed[/red]", str(len(report.failed)))
    console.print(table)

    for slug in report.failed:
        console.print(f"  [red]{slug}[/red]: {report.errors.get(slug, 'unknown error')}")


# --- Database Commands ---

def cmd_init_db(args: argparse.Namespace) -> int:
    """Create the database schema."""
    settings = _settings(args)
    with _open_database(settings):
        pass
    console.print(f"[green]Database ready:[/green] {settings.database_path}")
    return 0


def cmd_revisions(args: argparse.Namespace) -> int:
    """Show the revision ledger."""
    settings = _settings(args)
    with _open_database(settings) as db:
        records = RevisionLedger(db).all()

    if not records:
        console.print("[yellow]No revisions recorded yet.[/yellow]")
        console.print("Run [bold]pluginsync sync --action NAME[/bold] to start tracking.")
        return 0

    table = Table(title="Revision Ledger")
    table.add_column("Action", style="cyan")
    table.add_column("Revision", justify="right")
    for record in records:
        table.add_row(record.action, str(record.revision))
    console.print(table)
    return 0


# --- Import Commands ---

def cmd_import_meta(args: argparse.Namespace) -> int:
    """Import cached metadata files into the database.

    Always exits 0; individual failures are logged and summarized.
    """
    settings = _settings(args)
    directory = Path(args.dir) if args.dir else settings.metadata_dir

    if not directory.is_dir():
        console.print(f"[yellow]No metadata directory at {directory}.[/yellow]")
        return 0

    with _open_database(settings) as db:
        report = ImportPipeline(db).import_directory(directory)

    print_report(report)
    console.print("Done!")
    return 0


# --- Sync Commands ---

def cmd_candidates(args: argparse.Namespace) -> int:
    """List plugins that the given action would import."""
    settings = _settings(args)

    with _open_database(settings) as db:
        engine = _build_engine(settings, db)
        try:
            candidates = engine.list_candidates(args.action, _allow_list(args, settings))
        except RemoteQueryFailure as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1

    if not candidates:
        console.print(f"[yellow]Nothing to update for '{args.action}'.[/yellow]")
        return 0

    table = Table(title=f"Candidates for '{args.action}'")
    table.add_column("Slug", style="cyan")
    table.add_column("Known versions")
    for slug, versions in candidates.items():
        table.add_row(slug, ", ".join(versions) or "[dim]-[/dim]")
    console.print(table)
    console.print(f"\nTotal: {len(candidates)} plugin(s)")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    """List candidates, import their metadata, then advance the ledger."""
    settings = _settings(args)
    action = args.action

    with _open_database(settings) as db:
        client = CatalogClient.from_settings(settings)
        engine = _build_engine(settings, db, client)

        console.print(f"Computing plugins to update for '{action}'...")
        try:
            if engine.ledger.revision_for(action) is not None:
                engine.identify_current_revision(force=True)
            candidates = engine.list_candidates(action, _allow_list(args, settings))
        except RemoteQueryFailure as e:
            console.print(f"[red]Error:[/red] {e}")
            return 1

        console.print(f"Found {len(candidates)} plugin(s) to update.")
        if args.dry_run:
            console.print("[yellow]Dry run; nothing imported.[/yellow]")
            return 0

        fetcher = MetadataFetcher(client, engine.cache, settings.cache_ttl_s)
        report = ImportPipeline(db).import_all(candidates, fetcher)

        revision = engine.observed_revision(action)
        engine.record_revision(action)

    # Failed plugins are left out of the baseline and count as new next run.
    kept = {slug: versions for slug, versions in candidates.items() if slug not in report.errors}
    preserve_baseline(engine.baseline, kept, revision, settings.baseline_path)

    print_report(report)
    if revision is not None:
        console.print(f"[green]Sync complete[/green] at revision {revision}.")
    else:
        console.print("[green]Sync complete[/green]; revision unchanged.")
    return 0


# --- Parser Setup ---

def add_catalog_commands(parser: argparse.ArgumentParser, subparsers: argparse._SubParsersAction) -> None:
    """Add catalog-related commands to the main parser."""

    # init-db
    p_init = subparsers.add_parser("init-db", help="Create the database schema")
    p_init.set_defaults(func=cmd_init_db)

    # import-meta
    p_import = subparsers.add_parser("import-meta", help="Import metadata from cached JSON files")
    p_import.add_argument("--dir", "-d", help="Directory of <slug>.json files (default: cache dir)")
    p_import.set_defaults(func=cmd_import_meta)

    # candidates
    p_candidates = subparsers.add_parser("candidates", help="List plugins an action would import")
    p_candidates.add_argument("--action", "-a", default="default", help="Sync action name")
    p_candidates.add_argument("--plugins", "-p", help="Comma-separated list of plugin slugs")
    p_candidates.set_defaults(func=cmd_candidates)

    # sync
    p_sync = subparsers.add_parser("sync", help="Sync changed plugins into the database")
    p_sync.add_argument("--action", "-a", default="default", help="Sync action name")
    p_sync.add_argument("--plugins", "-p", help="Comma-separated list of plugin slugs")
    p_sync.add_argument("--dry-run", action="store_true", help="Only list candidates")
    p_sync.set_defaults(func=cmd_sync)

    # revisions
    p_revisions = subparsers.add_parser("revisions", help="Show the revision ledger")
    p_revisions.set_defaults(func=cmd_revisions)


def run_catalog_command(args: argparse.Namespace) -> int:
    """Run a catalog command if func is set."""
    if hasattr(args, "func") and args.func:
        return args.func(args)
    return -1  # Not a catalog command
