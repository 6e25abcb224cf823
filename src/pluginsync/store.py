"""SQLite storage layer for pluginsync."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .errors import PersistenceFailure


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS entries (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE,
        current_version TEXT,
        status TEXT NOT NULL,
        updated TEXT,
        closed_at TEXT,
        pulled_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS entry_files (
        id TEXT PRIMARY KEY,
        entry_id TEXT NOT NULL REFERENCES entries(id),
        file_url TEXT NOT NULL,
        type TEXT NOT NULL,
        version TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS revisions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        action TEXT NOT NULL UNIQUE,
        revision INTEGER NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_entry_files_entry ON entry_files(entry_id);",
)

Params = Optional[Dict[str, Any]]


class Database:
    """Relational store with explicit transaction control.

    One connection is held for the lifetime of the object. Statements outside
    a transaction autocommit; ``begin_transaction`` opens an explicit one that
    must be closed with ``commit`` or ``rollback`` (or use ``transaction()``).
    """

    def __init__(self, db_path: Union[Path, str]) -> None:
        if str(db_path) == ":memory:":
            self.db_path: Union[Path, str] = ":memory:"
        else:
            self.db_path = Path(db_path).expanduser().resolve()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger("Database")
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            self._conn = conn
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def init_schema(self) -> None:
        conn = self.connect()
        for statement in SCHEMA_STATEMENTS:
            conn.execute(statement)

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    # --- Transactions ---

    def begin_transaction(self) -> None:
        self._run("BEGIN;")

    def commit(self) -> None:
        self._run("COMMIT;")

    def rollback(self) -> None:
        if not self.in_transaction:
            return
        self._run("ROLLBACK;")

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Commit on normal exit, roll back on any exception."""
        self.begin_transaction()
        try:
            yield self
            self.commit()
        except BaseException:
            self.rollback()
            raise

    # --- Statements ---

    def execute(self, sql: str, params: Params = None) -> int:
        """Run a statement and return the last inserted rowid."""
        cursor = self._run(sql, params)
        return int(cursor.lastrowid or 0)

    def query_one(self, sql: str, params: Params = None) -> Optional[sqlite3.Row]:
        return self._run(sql, params).fetchone()

    def query_all(self, sql: str, params: Params = None) -> List[sqlite3.Row]:
        return self._run(sql, params).fetchall()

    def _run(self, sql: str, params: Params = None) -> sqlite3.Cursor:
        conn = self.connect()
        try:
            return conn.execute(sql, params or {})
        except sqlite3.Error as e:
            self.logger.debug(f"Statement failed: {sql.strip()} ({e})")
            raise PersistenceFailure(str(e)) from e
