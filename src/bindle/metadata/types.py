# ABOUTME: Core metadata data structures produced by the format parsers.
# ABOUTME: Metadata is the interchange record between parsing, dedup, and file organization.

from dataclasses import dataclass, field
from enum import Enum

UNKNOWN_AUTHOR = "Unknown"


class ContentType(str, Enum):
    """Kind of content an archive holds."""

    BOOK = "book"
    COMIC = "comic"


@dataclass
class Metadata:
    """Canonical metadata extracted from a single archive.

    Produced fresh on every parse and owned by the caller. Embedded metadata
    (OPF or ComicInfo.xml) overrides filename-derived guesses whenever it
    supplies a non-empty value.

    A series_index of 0 means "no index known". It is not distinguishable
    from a legitimate entry zero of a series; callers must live with that.
    """

    title: str
    author: str = UNKNOWN_AUTHOR
    series: str = ""
    series_index: float = 0.0
    page_count: int = 0
    content_type: ContentType = ContentType.BOOK
    isbn: str = ""
    publisher: str = ""
    publish_date: str = ""
    description: str = ""
    language: str = ""
    subjects: list[str] = field(default_factory=list)

    @property
    def has_series(self) -> bool:
        """Whether a series name is known."""
        return bool(self.series)

    @property
    def is_comic(self) -> bool:
        return self.content_type is ContentType.COMIC


@dataclass(frozen=True)
class CoverImage:
    """Raw cover bytes as stored in the archive. Extension is lowercase with a dot."""

    data: bytes
    extension: str
