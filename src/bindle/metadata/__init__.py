# ABOUTME: Metadata package for the records produced by archive parsing.
# ABOUTME: Exports Metadata, CoverImage, ContentType, and ISBN helpers.

from bindle.metadata.isbn import find_isbn, normalize_isbn
from bindle.metadata.types import ContentType, CoverImage, Metadata

__all__ = [
    "ContentType",
    "CoverImage",
    "Metadata",
    "find_isbn",
    "normalize_isbn",
]
