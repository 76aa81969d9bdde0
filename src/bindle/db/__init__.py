# ABOUTME: Public API for the Bindle library database layer.
# ABOUTME: Exports connection management, catalog operations, and data types.

from bindle.db.catalog import DuplicateGroup, LibraryCatalog, new_book_id
from bindle.db.connection import DEFAULT_DB_PATH, open_library
from bindle.db.mapping import BookRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "BookRecord",
    "DuplicateGroup",
    "LibraryCatalog",
    "new_book_id",
    "open_library",
]
