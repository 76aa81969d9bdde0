# ABOUTME: Moves book files into the canonical Author/Series/Title layout of the library.
# ABOUTME: Handles name sanitization, " (N)" conflict suffixes, cross-device moves, and empty-dir cleanup.

import logging
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR_DIR = "Unknown Author"
UNKNOWN_TITLE = "Unknown Title"
MAX_NAME_LENGTH = 200
_MAX_CONFLICT_ATTEMPTS = 1000

_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f\x7f]')
_SEPARATOR_RUN_RE = re.compile(r"[_\s]+")


def sanitize_filename(name: str) -> str:
    """Make a string safe to use as one path component.

    Unsafe characters become underscores, runs of underscores and whitespace
    collapse to a single space, and leading/trailing spaces and dots are
    trimmed. The result is at most 200 characters and may be empty.
    """
    cleaned = _UNSAFE_CHARS_RE.sub("_", name)
    cleaned = _SEPARATOR_RUN_RE.sub(" ", cleaned).strip(" .")
    if len(cleaned) > MAX_NAME_LENGTH:
        cleaned = cleaned[:MAX_NAME_LENGTH].rstrip(" .")
    return cleaned


def resolve_conflict(
    target: Path, source: Path | None = None, max_attempts: int = _MAX_CONFLICT_ATTEMPTS
) -> Path:
    """Find a free path for ``target`` by appending " (2)", " (3)", ...

    The target itself is returned when it is free or is already ``source``.
    When every attempt is taken the original target is returned.
    """
    if not target.exists() or _same_file(target, source):
        return target

    stem, suffix, parent = target.stem, target.suffix, target.parent
    for counter in range(2, max_attempts):
        candidate = parent / f"{stem} ({counter}){suffix}"
        if not candidate.exists() or _same_file(candidate, source):
            return candidate
    return target


def _same_file(a: Path, b: Path | None) -> bool:
    if b is None:
        return False
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False


def move_file(source: Path, dest: Path) -> None:
    """Move a file, copying across filesystems when a rename is not possible.

    Raises:
        OSError: If neither the rename nor the copy fallback succeeds. A
            partially written destination is removed first.
    """
    try:
        os.rename(source, dest)
        return
    except OSError as exc:
        logger.debug("Rename %s -> %s failed (%s); copying instead", source, dest, exc)

    try:
        with source.open("rb") as src, dest.open("wb") as dst:
            shutil.copyfileobj(src, dst)
    except OSError:
        dest.unlink(missing_ok=True)
        raise
    shutil.copystat(source, dest)
    source.unlink()


def clean_empty_dirs(directory: Path, stop_dir: Path) -> None:
    """Remove empty directories from ``directory`` upward, never touching ``stop_dir``.

    Directories outside ``stop_dir`` are left alone.
    """
    stop = stop_dir.resolve()
    current = directory.resolve()
    while current != stop and stop in current.parents:
        try:
            current.rmdir()
        except OSError:
            # Not empty, or already gone.
            return
        current = current.parent


@dataclass(frozen=True)
class ReorganizedPaths:
    """Where a book and its cover ended up."""

    book_path: Path
    cover_path: Path | None


class FileOrganizer:
    """Places books under ``<books_dir>/<Author>[/<Series>]/<Title><ext>``."""

    def __init__(self, books_dir: Path) -> None:
        self.books_dir = Path(books_dir)

    def canonical_path(self, author: str, series: str, title: str, extension: str) -> Path:
        """Compute where a book belongs, before conflict resolution."""
        author_dir = sanitize_filename(author) or UNKNOWN_AUTHOR_DIR
        filename = sanitize_filename(title) or UNKNOWN_TITLE
        directory = self.books_dir / author_dir
        series_dir = sanitize_filename(series)
        if series_dir:
            directory = directory / series_dir
        return directory / f"{filename}{extension}"

    def reorganize(
        self,
        book_path: Path,
        cover_path: Path | None,
        author: str,
        series: str,
        title: str,
    ) -> ReorganizedPaths:
        """Move a book (and its cover) to the canonical location.

        Args:
            book_path: Current location of the book file.
            cover_path: Current location of the cover image, if any.
            author: Author name used for the top-level directory.
            series: Series name, or empty for none.
            title: Title used for the file name.

        Returns:
            ReorganizedPaths with the final book and cover locations. The
            cover path is unchanged if the cover could not be moved.

        Raises:
            OSError: If the book file itself cannot be moved.
        """
        book_path = Path(book_path)
        target = self.canonical_path(author, series, title, book_path.suffix.lower())
        target = resolve_conflict(target, book_path)

        created_dir = not target.parent.exists()
        moved = False
        if not _same_file(target, book_path):
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                move_file(book_path, target)
            except OSError:
                if created_dir:
                    clean_empty_dirs(target.parent, self.books_dir)
                raise
            moved = True
            logger.debug("Moved %s -> %s", book_path, target)

        new_cover = cover_path
        if cover_path is not None:
            new_cover = self._move_cover(Path(cover_path), target)

        if moved:
            clean_empty_dirs(book_path.parent, self.books_dir)

        return ReorganizedPaths(book_path=target, cover_path=new_cover)

    def _move_cover(self, cover_path: Path, book_target: Path) -> Path:
        """Place the cover next to the book; keep it where it is on failure."""
        cover_target = book_target.with_name(book_target.stem + cover_path.suffix.lower())
        cover_target = resolve_conflict(cover_target, cover_path)
        if _same_file(cover_target, cover_path):
            return cover_path
        try:
            move_file(cover_path, cover_target)
        except OSError as exc:
            logger.warning("Failed to move cover %s: %s", cover_path, exc)
            return cover_path
        return cover_target
