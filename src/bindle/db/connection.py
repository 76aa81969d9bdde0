# ABOUTME: SQLite database connection management for the Bindle library catalog.
# ABOUTME: Opens or creates the database, applies schema, and configures row access.

import sqlite3
from pathlib import Path

from bindle.config import DEFAULT_LIBRARY_ROOT
from bindle.db.schema import MIGRATIONS, SCHEMA_V1

DEFAULT_DB_PATH = DEFAULT_LIBRARY_ROOT / "library.db"


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply migrations newer than the stored schema version, in order."""
    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)


def open_library(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the Bindle library database.

    Creates the database file and parent directories if they don't exist and
    applies the schema on first creation. Uses WAL journaling and
    sqlite3.Row for dict-like column access. The connection may be used from
    worker threads; callers serialize writes.

    Args:
        path: Path to the database file. Defaults to ~/.bindle/library.db.

    Returns:
        A configured sqlite3.Connection.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")

    if not _schema_exists(conn):
        conn.executescript(SCHEMA_V1)

    _apply_migrations(conn)

    return conn
