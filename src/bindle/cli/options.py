# ABOUTME: Shared Click options and library-opening helpers for Bindle CLI commands.
# ABOUTME: Provides --library, --db, and --owner plus a context manager yielding an open catalog.

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click

from bindle.config import DEFAULT_LIBRARY_ROOT, LibraryPaths
from bindle.db.catalog import LibraryCatalog
from bindle.db.connection import open_library

library_option = click.option(
    "--library",
    "library_root",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="BINDLE_LIBRARY",
    default=None,
    help=f"Library root directory (default: {DEFAULT_LIBRARY_ROOT}, env: BINDLE_LIBRARY)",
)

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to library database (default: <library>/library.db)",
)

owner_option = click.option(
    "--owner",
    "owner_id",
    default="",
    help="Owner id to scope the operation to (default: unowned pool / all books).",
)


@dataclass
class OpenLibrary:
    """An open catalog together with the layout it belongs to."""

    paths: LibraryPaths
    conn: sqlite3.Connection
    catalog: LibraryCatalog


@contextmanager
def library_session(library_root: Path | None, db_path: Path | None) -> Iterator[OpenLibrary]:
    """Open the catalog for a command and close it on every exit path."""
    paths = LibraryPaths(library_root or DEFAULT_LIBRARY_ROOT)
    conn = open_library(db_path or paths.db_path)
    try:
        yield OpenLibrary(paths=paths, conn=conn, catalog=LibraryCatalog(conn))
    finally:
        conn.close()
