# ABOUTME: Content-hash duplicate detection, hash backfill, and safe merge of duplicate books.
# ABOUTME: Works against any book store; per-item failures are logged and never abort a batch.

import logging
import sqlite3
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from bindle.config import DEFAULT_BACKFILL_BATCH_SIZE
from bindle.core.hashing import compute_file_hash
from bindle.db.catalog import DuplicateGroup
from bindle.db.mapping import BookRecord
from bindle.errors import BindleError, BookNotFoundError, NotOwnerError

logger = logging.getLogger(__name__)

# Failures of a single stored book; they never end a backfill or merge early.
_STORE_ERRORS = (BindleError, sqlite3.Error)


class BookStore(Protocol):
    """The persistence operations the resolver needs."""

    def get_book(self, book_id: str) -> BookRecord | None: ...

    def get_books_by_hash(self, file_hash: str) -> list[BookRecord]: ...

    def update_file_hash(self, book_id: str, file_hash: str) -> None: ...

    def delete_book(self, book_id: str) -> None: ...

    def count_books_without_hash(self, owner_id: str = "") -> int: ...

    def get_books_without_hash(
        self, owner_id: str = "", limit: int = 100, offset: int = 0
    ) -> list[BookRecord]: ...

    def find_duplicate_groups(self, owner_id: str = "") -> list[DuplicateGroup]: ...


@dataclass
class DuplicateCheckResult:
    """Outcome of checking one file against the library."""

    is_duplicate: bool
    file_hash: str
    duplicates: list[BookRecord] = field(default_factory=list)


@dataclass
class HashProgress:
    """Counters for one hash backfill run."""

    total: int = 0
    processed: int = 0
    failed: int = 0


@dataclass(frozen=True)
class MergeResult:
    """What a merge actually removed."""

    kept_book: BookRecord
    deleted_books: tuple[str, ...]
    files_removed: int


def _in_scope(book: BookRecord, owner_id: str) -> bool:
    return not owner_id or book.owner_id == owner_id


def _remove_file(path: Path | None, kind: str, book_id: str) -> bool:
    """Delete one file, best effort. A file that is already gone counts as removed."""
    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Failed to delete %s file for %s: %s", kind, book_id, exc)
        return False
    return True


class DuplicateResolver:
    """Duplicate detection and cleanup over a book store.

    Backfills and merges on one resolver run one at a time; concurrent calls
    block on the resolver's lock instead of interleaving.
    """

    def __init__(self, store: BookStore) -> None:
        self._store = store
        self._lock = threading.Lock()

    def check_for_duplicate(self, path: Path, owner_id: str = "") -> DuplicateCheckResult:
        """Hash a file and report existing books with identical content.

        Args:
            path: File about to be added.
            owner_id: Restrict matches to this owner; empty matches every book.

        Returns:
            DuplicateCheckResult with the digest and any matching records.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        file_hash = compute_file_hash(Path(path))
        matches = [
            book for book in self._store.get_books_by_hash(file_hash) if _in_scope(book, owner_id)
        ]
        return DuplicateCheckResult(
            is_duplicate=bool(matches), file_hash=file_hash, duplicates=matches
        )

    def compute_hash_for_book(self, book: BookRecord) -> str:
        """Hash a cataloged book's file and store the digest.

        Raises:
            FileNotFoundError: If the book file is missing.
        """
        file_hash = compute_file_hash(book.file_path)
        self._store.update_file_hash(book.id, file_hash)
        return file_hash

    def compute_missing_hashes(
        self, owner_id: str = "", batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE
    ) -> HashProgress:
        """Compute and store digests for books that lack one.

        Works through bounded pages of hash-less books. A book that fails
        (missing file, unreadable) is counted in ``failed`` and stays hash-less;
        the run continues with the next book.

        Args:
            owner_id: Limit the backfill to one owner; empty covers every book.
            batch_size: Books fetched per page.

        Returns:
            HashProgress with total, processed, and failed counts.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")

        with self._lock:
            progress = HashProgress(total=self._store.count_books_without_hash(owner_id))
            seen: set[str] = set()

            while progress.processed + progress.failed < progress.total:
                # Successful books leave the hash-less set; failed ones stay
                # in place, so they are exactly the rows to skip over.
                batch = self._store.get_books_without_hash(
                    owner_id, limit=batch_size, offset=progress.failed
                )
                fresh = [book for book in batch if book.id not in seen]
                if not fresh:
                    break

                for book in fresh:
                    seen.add(book.id)
                    try:
                        self.compute_hash_for_book(book)
                    except (OSError, *_STORE_ERRORS) as exc:
                        logger.warning("Failed to compute hash for book %s: %s", book.id, exc)
                        progress.failed += 1
                    else:
                        progress.processed += 1

            return progress

    def find_duplicates(self, owner_id: str = "") -> list[DuplicateGroup]:
        """All groups of two or more books sharing a digest."""
        return self._store.find_duplicate_groups(owner_id)

    def merge_duplicates(
        self, keep_id: str, delete_ids: list[str], owner_id: str = ""
    ) -> MergeResult:
        """Keep one book and remove the given duplicates of it.

        Every candidate is handled on its own. Candidates are skipped (and
        logged) when they are the kept book, cannot be loaded, belong to
        someone else, or do not carry the kept book's digest. Otherwise the
        row is deleted first, then the book and cover files, best effort.

        Args:
            keep_id: The book that survives.
            delete_ids: Books to remove.
            owner_id: Requesting owner; empty skips ownership checks.

        Returns:
            MergeResult listing exactly the ids that were removed.

        Raises:
            BookNotFoundError: If the kept book does not exist.
            NotOwnerError: If owner_id is given and does not own the kept book.
        """
        with self._lock:
            kept = self._store.get_book(keep_id)
            if kept is None:
                raise BookNotFoundError(f"Book with id {keep_id} not found")
            if not _in_scope(kept, owner_id):
                raise NotOwnerError(f"Not the owner of book {keep_id}")

            deleted: list[str] = []
            files_removed = 0

            for book_id in delete_ids:
                if book_id == keep_id or book_id in deleted:
                    continue

                try:
                    book = self._store.get_book(book_id)
                except _STORE_ERRORS as exc:
                    logger.warning("Failed to load book %s for deletion: %s", book_id, exc)
                    continue
                if book is None:
                    logger.warning("Failed to load book %s for deletion", book_id)
                    continue
                if not _in_scope(book, owner_id):
                    logger.warning("Cannot delete book %s: not owner", book_id)
                    continue
                if not kept.file_hash or book.file_hash != kept.file_hash:
                    logger.warning("Book %s has a different hash, skipping", book_id)
                    continue

                try:
                    self._store.delete_book(book_id)
                except _STORE_ERRORS as exc:
                    logger.warning("Failed to delete book %s from catalog: %s", book_id, exc)
                    continue

                book_removed = _remove_file(book.file_path, "book", book_id)
                cover_removed = _remove_file(book.cover_path, "cover", book_id)
                if book_removed or cover_removed:
                    files_removed += 1
                deleted.append(book_id)

            return MergeResult(
                kept_book=kept, deleted_books=tuple(deleted), files_removed=files_removed
            )
