# ABOUTME: Library location settings: where books, covers, and the catalog database live.
# ABOUTME: Defaults to ~/.bindle; the CLI overrides it with --library or BINDLE_LIBRARY.

from dataclasses import dataclass
from pathlib import Path

DEFAULT_LIBRARY_ROOT = Path.home() / ".bindle"

# Batch size used by the hash backfill when the caller does not choose one.
DEFAULT_BACKFILL_BATCH_SIZE = 100


@dataclass(frozen=True)
class LibraryPaths:
    """Directory layout of a library rooted at ``root``."""

    root: Path = DEFAULT_LIBRARY_ROOT

    @property
    def books_dir(self) -> Path:
        return self.root / "books"

    @property
    def covers_dir(self) -> Path:
        return self.root / "covers"

    @property
    def db_path(self) -> Path:
        return self.root / "library.db"

    def ensure(self) -> "LibraryPaths":
        """Create the books and covers directories if missing."""
        self.books_dir.mkdir(parents=True, exist_ok=True)
        self.covers_dir.mkdir(parents=True, exist_ok=True)
        return self
