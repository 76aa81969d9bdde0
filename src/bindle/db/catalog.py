# ABOUTME: CRUD operations for the Bindle library catalog.
# ABOUTME: Implements the book store interface the duplicate resolver and ingest pipeline consume.

import sqlite3
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from bindle.db.mapping import BookRecord, metadata_to_row, row_to_record
from bindle.errors import BookNotFoundError, CatalogError
from bindle.metadata.types import Metadata

_MISSING_HASH = "(file_hash IS NULL OR file_hash = '')"


@dataclass
class DuplicateGroup:
    """Books sharing one content digest, oldest first."""

    file_hash: str
    books: list[BookRecord]


def new_book_id() -> str:
    """Generate an opaque string identifier for a new book."""
    return uuid.uuid4().hex


class LibraryCatalog:
    """Wraps a sqlite3 connection and provides typed CRUD for the books table.

    Statements are serialized through an internal lock so one catalog can be
    shared by ingest workers on different threads.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()

    def _fetch(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise CatalogError(f"Catalog query failed: {exc}") from exc

    def _query(self, sql: str, params: tuple = ()) -> list[BookRecord]:
        return [row_to_record(row) for row in self._fetch(sql, params)]

    def _write(self, sql: str, params: tuple) -> int:
        try:
            with self._lock:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
        except sqlite3.Error as exc:
            raise CatalogError(f"Catalog write failed: {exc}") from exc
        return cursor.rowcount

    def add_book(
        self,
        metadata: Metadata,
        *,
        file_path: Path,
        file_format: str,
        file_hash: str = "",
        cover_path: Path | None = None,
        owner_id: str = "",
        file_size: int = 0,
        book_id: str | None = None,
    ) -> str:
        """Add a book to the catalog.

        Args:
            metadata: The book's extracted metadata.
            file_path: Where the book file lives in the library.
            file_format: Format name ("epub", "cbz", "cbr").
            file_hash: SHA-256 digest, or empty if not yet computed.
            cover_path: Where the extracted cover lives, if any.
            owner_id: Owning user, or empty for the unowned pool.
            file_size: Size of the book file in bytes.
            book_id: Identifier to use; generated when omitted.

        Returns:
            The book's identifier.
        """
        book_id = book_id or new_book_id()
        row = metadata_to_row(metadata)
        row.update(
            {
                "id": book_id,
                "owner_id": owner_id,
                "file_format": file_format,
                "file_path": str(file_path),
                "cover_path": str(cover_path) if cover_path else None,
                "file_size": file_size,
                "file_hash": file_hash or None,
            }
        )
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        self._write(
            f"INSERT INTO books ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        return book_id

    def get_book(self, book_id: str) -> BookRecord | None:
        """Retrieve a book by its identifier."""
        records = self._query("SELECT * FROM books WHERE id = ?", (book_id,))
        return records[0] if records else None

    def get_books_by_hash(self, file_hash: str) -> list[BookRecord]:
        """All books sharing a content digest, oldest first."""
        if not file_hash:
            return []
        return self._query(
            "SELECT * FROM books WHERE file_hash = ? ORDER BY date_added, id",
            (file_hash,),
        )

    def list_all(self, owner_id: str = "") -> list[BookRecord]:
        """Return books ordered by title, limited to one owner when given."""
        if owner_id:
            return self._query(
                "SELECT * FROM books WHERE owner_id = ? ORDER BY title", (owner_id,)
            )
        return self._query("SELECT * FROM books ORDER BY title")

    def update_file_hash(self, book_id: str, file_hash: str) -> None:
        """Store a book's content digest.

        Raises:
            BookNotFoundError: If the book_id does not exist.
        """
        if self._write("UPDATE books SET file_hash = ? WHERE id = ?", (file_hash, book_id)) == 0:
            raise BookNotFoundError(f"Book with id {book_id} not found")

    def update_file_paths(self, book_id: str, file_path: Path, cover_path: Path | None) -> None:
        """Record new on-disk locations after a reorganize.

        Raises:
            BookNotFoundError: If the book_id does not exist.
        """
        changed = self._write(
            "UPDATE books SET file_path = ?, cover_path = ? WHERE id = ?",
            (str(file_path), str(cover_path) if cover_path else None, book_id),
        )
        if changed == 0:
            raise BookNotFoundError(f"Book with id {book_id} not found")

    def delete_book(self, book_id: str) -> None:
        """Delete a book row. Files on disk are left alone.

        Raises:
            BookNotFoundError: If the book_id does not exist.
        """
        if self._write("DELETE FROM books WHERE id = ?", (book_id,)) == 0:
            raise BookNotFoundError(f"Book with id {book_id} not found")

    # --- Hash backfill support ---

    def count_books_without_hash(self, owner_id: str = "") -> int:
        """Count books with no stored digest, within one owner when given."""
        sql = f"SELECT COUNT(*) FROM books WHERE {_MISSING_HASH}"
        params: tuple = ()
        if owner_id:
            sql += " AND owner_id = ?"
            params = (owner_id,)
        return self._fetch(sql, params)[0][0]

    def get_books_without_hash(
        self, owner_id: str = "", limit: int = 100, offset: int = 0
    ) -> list[BookRecord]:
        """One page of books with no stored digest, in a stable order."""
        sql = f"SELECT * FROM books WHERE {_MISSING_HASH}"
        params: tuple = ()
        if owner_id:
            sql += " AND owner_id = ?"
            params = (owner_id,)
        sql += " ORDER BY date_added, id LIMIT ? OFFSET ?"
        return self._query(sql, (*params, limit, offset))

    def find_duplicate_groups(self, owner_id: str = "") -> list[DuplicateGroup]:
        """Group books by digest, keeping only digests shared by two or more books.

        Largest groups come first.
        """
        sql = "SELECT file_hash, COUNT(*) AS cnt FROM books WHERE file_hash != ''"
        params: tuple = ()
        if owner_id:
            sql += " AND owner_id = ?"
            params = (owner_id,)
        sql += " GROUP BY file_hash HAVING cnt > 1 ORDER BY cnt DESC, file_hash"
        hashes = [row["file_hash"] for row in self._fetch(sql, params)]

        groups = []
        for file_hash in hashes:
            books = self.get_books_by_hash(file_hash)
            if owner_id:
                books = [book for book in books if book.owner_id == owner_id]
            groups.append(DuplicateGroup(file_hash=file_hash, books=books))
        return groups
