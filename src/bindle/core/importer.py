# ABOUTME: Ingest pipeline that validates, parses, dedups, and files books into the library.
# ABOUTME: Copies each accepted file to its canonical location and records it in the catalog.

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from bindle.config import LibraryPaths
from bindle.core.duplicates import DuplicateResolver
from bindle.core.organizer import FileOrganizer
from bindle.db.catalog import LibraryCatalog, new_book_id
from bindle.db.mapping import BookRecord
from bindle.errors import BindleError
from bindle.formats.registry import FileFormat, detect_format, get_handler
from bindle.metadata.types import CoverImage, Metadata

logger = logging.getLogger(__name__)


class IngestStatus(str, Enum):
    ADDED = "added"
    SKIPPED = "skipped"


@dataclass
class IngestOutcome:
    """What happened to one file.

    ``book_id`` is set only when the file was added. ``duplicates`` lists the
    existing books that caused a skip.
    """

    source: Path
    status: IngestStatus
    file_format: FileFormat
    metadata: Metadata
    file_hash: str
    book_id: str | None = None
    book_path: Path | None = None
    cover_path: Path | None = None
    duplicates: list[BookRecord] = field(default_factory=list)


@dataclass
class ImportResult:
    """Summary of an import operation."""

    added: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[tuple[Path, str]] = field(default_factory=list)
    outcomes: list[IngestOutcome] = field(default_factory=list)


def _save_cover(cover: CoverImage, covers_dir: Path, book_id: str) -> Path:
    covers_dir.mkdir(parents=True, exist_ok=True)
    cover_path = covers_dir / f"{book_id}{cover.extension}"
    cover_path.write_bytes(cover.data)
    return cover_path


def _discard(*paths: Path | None) -> None:
    for path in paths:
        if path is not None:
            path.unlink(missing_ok=True)


def ingest_file(
    path: Path,
    catalog: LibraryCatalog,
    paths: LibraryPaths,
    owner_id: str = "",
    fmt: FileFormat | str | None = None,
    *,
    allow_duplicates: bool = False,
) -> IngestOutcome:
    """Add one file to the library.

    Steps: validate, parse, hash, duplicate check, copy into the books
    directory, save the cover, move both to the canonical location, and
    insert the catalog row. The source file is never modified.

    Args:
        path: File to ingest.
        catalog: Catalog the book is recorded in.
        paths: Library layout the file is copied into.
        owner_id: Owner of the new book; empty for the unowned pool.
        fmt: Declared format; detected from the file when omitted.
        allow_duplicates: Add the file even if identical content exists.

    Returns:
        IngestOutcome describing whether the file was added or skipped.

    Raises:
        BindleError: If the format is unsupported or the file is invalid.
        OSError: If the file cannot be read or placed in the library.
    """
    path = Path(path)
    file_format = detect_format(path) if fmt is None else get_handler(fmt).format
    handler = get_handler(file_format)

    handler.validate(path)
    metadata = handler.parse(path)

    check = DuplicateResolver(catalog).check_for_duplicate(path, owner_id)
    if check.is_duplicate and not allow_duplicates:
        logger.info("Skipping %s: duplicate of %s", path, check.duplicates[0].id)
        return IngestOutcome(
            source=path,
            status=IngestStatus.SKIPPED,
            file_format=file_format,
            metadata=metadata,
            file_hash=check.file_hash,
            duplicates=check.duplicates,
        )

    paths.ensure()
    book_id = new_book_id()
    staged = paths.books_dir / f"{book_id}{file_format.extension}"
    try:
        shutil.copy2(path, staged)
    except OSError:
        _discard(staged)
        raise

    cover_path: Path | None = None
    try:
        cover = handler.extract_cover(path)
        if cover is not None:
            cover_path = _save_cover(cover, paths.covers_dir, book_id)
    except (BindleError, OSError) as exc:
        logger.warning("Could not extract cover from %s: %s", path, exc)

    organizer = FileOrganizer(paths.books_dir)
    try:
        placed = organizer.reorganize(
            staged, cover_path, metadata.author, metadata.series, metadata.title
        )
    except OSError:
        _discard(staged, cover_path)
        raise

    try:
        catalog.add_book(
            metadata,
            file_path=placed.book_path,
            file_format=file_format.value,
            file_hash=check.file_hash,
            cover_path=placed.cover_path,
            owner_id=owner_id,
            file_size=placed.book_path.stat().st_size,
            book_id=book_id,
        )
    except Exception:
        _discard(placed.book_path, placed.cover_path)
        raise

    return IngestOutcome(
        source=path,
        status=IngestStatus.ADDED,
        file_format=file_format,
        metadata=metadata,
        file_hash=check.file_hash,
        book_id=book_id,
        book_path=placed.book_path,
        cover_path=placed.cover_path,
    )


def ingest_paths(
    files: list[Path],
    catalog: LibraryCatalog,
    paths: LibraryPaths,
    owner_id: str = "",
    *,
    allow_duplicates: bool = False,
) -> ImportResult:
    """Ingest several files, recording each one's outcome.

    Invalid or unreadable files are counted as errors and do not stop the
    batch.
    """
    result = ImportResult()

    for file_path in files:
        try:
            outcome = ingest_file(
                file_path, catalog, paths, owner_id, allow_duplicates=allow_duplicates
            )
        except (BindleError, OSError) as exc:
            logger.debug("Failed to ingest %s", file_path, exc_info=True)
            result.errors += 1
            result.error_details.append((file_path, str(exc)))
            continue

        result.outcomes.append(outcome)
        if outcome.status is IngestStatus.ADDED:
            result.added += 1
        else:
            result.skipped += 1

    return result
