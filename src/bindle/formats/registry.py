# ABOUTME: Format detection and dispatch to the EPUB, CBZ, and CBR handlers.
# ABOUTME: Handlers are plain records of functions keyed by FileFormat, not a class hierarchy.

import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from bindle.errors import UnsupportedFormatError
from bindle.formats import comic, epub
from bindle.metadata.types import CoverImage, Metadata


class FileFormat(str, Enum):
    """Archive formats Bindle can ingest."""

    EPUB = "epub"
    CBZ = "cbz"
    CBR = "cbr"

    @property
    def extension(self) -> str:
        return f".{self.value}"


@dataclass(frozen=True)
class FormatHandler:
    """Capabilities of one archive format.

    ``list_contents`` returns chapter entry names for EPUB and sorted page
    names for comics.
    """

    format: FileFormat
    parse: Callable[[Path], Metadata]
    validate: Callable[[Path], None]
    extract_cover: Callable[[Path], CoverImage | None]
    list_contents: Callable[[Path], list[str]]


def _epub_contents(path: Path) -> list[str]:
    return [chapter.href for chapter in epub.get_table_of_contents(path)]


HANDLERS: dict[FileFormat, FormatHandler] = {
    FileFormat.EPUB: FormatHandler(
        format=FileFormat.EPUB,
        parse=epub.parse_epub,
        validate=epub.validate_epub,
        extract_cover=epub.extract_cover_epub,
        list_contents=_epub_contents,
    ),
    FileFormat.CBZ: FormatHandler(
        format=FileFormat.CBZ,
        parse=comic.parse_cbz,
        validate=comic.validate_cbz,
        extract_cover=comic.extract_cover_cbz,
        list_contents=comic.get_page_list_cbz,
    ),
    FileFormat.CBR: FormatHandler(
        format=FileFormat.CBR,
        parse=comic.parse_cbr,
        validate=comic.validate_cbr,
        extract_cover=comic.extract_cover_cbr,
        list_contents=comic.get_page_list_cbr,
    ),
}

_ZIP_MAGIC = b"PK\x03\x04"
_RAR_MAGIC = b"Rar!\x1a\x07"
_EPUB_MIMETYPE = b"application/epub+zip"


def _sniff(path: Path) -> FileFormat | None:
    """Identify a format from leading magic bytes."""
    with open(path, "rb") as f:
        head = f.read(8)

    if head.startswith(_RAR_MAGIC):
        return FileFormat.CBR
    if head.startswith(_ZIP_MAGIC):
        try:
            with zipfile.ZipFile(path) as zf:
                if "mimetype" in zf.namelist() and zf.read("mimetype").strip() == _EPUB_MIMETYPE:
                    return FileFormat.EPUB
        except zipfile.BadZipFile:
            return None
        return FileFormat.CBZ
    return None


def parse_format(value: str) -> FileFormat:
    """Turn a declared format name (".epub", "CBZ", ...) into a FileFormat.

    Raises:
        UnsupportedFormatError: If the name is not a supported format.
    """
    try:
        return FileFormat(value.lower().lstrip("."))
    except ValueError as exc:
        raise UnsupportedFormatError(f"Unsupported format: {value}") from exc


def detect_format(path: Path) -> FileFormat:
    """Detect a file's format from its extension, falling back to magic bytes.

    Raises:
        UnsupportedFormatError: If neither the extension nor the content is recognized.
        FileNotFoundError: If the file does not exist and has no usable extension.
    """
    path = Path(path)
    suffix = path.suffix.lower().lstrip(".")
    if suffix in {fmt.value for fmt in FileFormat}:
        return FileFormat(suffix)

    detected = _sniff(path)
    if detected is None:
        raise UnsupportedFormatError(f"Unrecognized archive format: {path}")
    return detected


def get_handler(fmt: FileFormat | str) -> FormatHandler:
    """Look up the handler for a declared format."""
    if not isinstance(fmt, FileFormat):
        fmt = parse_format(fmt)
    return HANDLERS[fmt]
