"""pluginsync CLI - revision-tracked plugin directory sync.

Usage:
    pluginsync init-db                      # Create the database schema
    pluginsync import-meta [--dir PATH]     # Import cached metadata files
    pluginsync candidates --action NAME     # Show what an action would import
    pluginsync sync --action NAME           # Import changed plugins, advance revision
    pluginsync revisions                    # Show the revision ledger
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pluginsync",
        description="pluginsync: revision-tracked sync of the plugin directory into a database",
    )
    parser.add_argument("--config", help="Path to config.json (default: ~/.config/pluginsync/config.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="subcmd")

    from .catalog.commands import add_catalog_commands
    add_catalog_commands(parser, sub)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if not args.subcmd:
        parser.print_help()
        raise SystemExit(2)

    from .catalog.commands import run_catalog_command
    raise SystemExit(run_catalog_command(args))


if __name__ == "__main__":
    main()
