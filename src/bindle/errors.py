# ABOUTME: Exception taxonomy shared by the archive readers, parsers, and dedup service.
# ABOUTME: Every error raised on purpose by Bindle derives from BindleError.


class BindleError(Exception):
    """Base class for all Bindle errors."""


class ArchiveOpenError(BindleError):
    """Raised when a file is not a valid container of the expected kind."""


class ArchiveReadError(BindleError):
    """Raised on I/O failure or corruption while reading archive entries."""


class InvalidFormatError(BindleError):
    """Raised when a container opens but lacks its required internal structure."""


class NoImagesFoundError(InvalidFormatError):
    """Raised when a comic archive contains no page images."""


class PageIndexOutOfRangeError(BindleError, IndexError):
    """Raised when a requested comic page index is outside the page list."""

    def __init__(self, index: int, total: int) -> None:
        super().__init__(f"page index out of range: {index} (total: {total})")
        self.index = index
        self.total = total


class UnsupportedFormatError(BindleError):
    """Raised when a file format cannot be detected or has no handler."""


class NotOwnerError(BindleError):
    """Raised when a merge is requested by someone who does not own the kept book."""


class BookNotFoundError(BindleError, LookupError):
    """Raised when a book id does not exist in the catalog."""


class CatalogError(BindleError):
    """Raised when the catalog database rejects a query or write."""
