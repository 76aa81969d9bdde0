# ABOUTME: CBZ and CBR comic archive parsing: pages, cover, per-page bytes, and metadata.
# ABOUTME: Same contract for both; CBR lookups pay a second full pass over the RAR stream.

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path, PurePath

from lxml import etree

from bindle.errors import NoImagesFoundError, PageIndexOutOfRangeError
from bindle.formats.archive import ArchiveEntry, ArchiveReader, RarStreamReader, ZipArchiveReader
from bindle.metadata.types import ContentType, CoverImage, Metadata

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp"})

COMIC_INFO_NAME = "comicinfo.xml"

_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
}

CbzOpener = Callable[[Path], ZipArchiveReader]
CbrOpener = Callable[[Path], RarStreamReader]


def is_page(entry: ArchiveEntry) -> bool:
    """Whether an archive entry is a page image (hidden files excluded)."""
    return entry.extension in IMAGE_EXTENSIONS and not entry.basename.startswith(".")


def page_names(entries: Iterable[ArchiveEntry]) -> list[str]:
    """Page entry names in canonical order: lexicographic by full entry name."""
    return sorted(entry.name for entry in entries if is_page(entry))


def image_content_type(name: str) -> str:
    return _CONTENT_TYPES.get(PurePath(name).suffix.lower(), "application/octet-stream")


def _check_index(index: int, total: int) -> None:
    if index < 0 or index >= total:
        raise PageIndexOutOfRangeError(index, total)


# --- ComicInfo.xml and filename heuristics ---


@dataclass(frozen=True)
class ComicInfo:
    """The subset of ComicInfo.xml fields that feed Metadata."""

    title: str = ""
    series: str = ""
    number: float = 0.0
    writer: str = ""


_LEADING_NUMBER_RE = re.compile(r"\s*(\d+(?:\.\d+)?)")


def parse_comic_info(data: bytes) -> ComicInfo | None:
    """Parse ComicInfo.xml bytes; returns None if the document is unusable."""
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        logger.debug("Ignoring malformed ComicInfo.xml: %s", exc)
        return None
    if root is None:
        return None

    fields: dict[str, str] = {}
    for child in root:
        if isinstance(child.tag, str):
            name = etree.QName(child).localname
            fields.setdefault(name, "".join(child.itertext()).strip())

    number = 0.0
    match = _LEADING_NUMBER_RE.match(fields.get("Number", ""))
    if match:
        number = float(match.group(1))

    return ComicInfo(
        title=fields.get("Title", ""),
        series=fields.get("Series", ""),
        number=number,
        writer=fields.get("Writer", ""),
    )


_INDEX_TOKEN_RE = re.compile(r"\d+(?:\.\d+)?")


def series_from_filename(title: str) -> tuple[str, float]:
    """Best-effort series name and index from a title like "Saga 054" or "Saga #54".

    The last whitespace-separated token, with a leading ``#``, ``v`` or ``V``
    removed, must be a number; the remaining tokens (trailing hyphen trimmed)
    become the series name. Anything else yields ("", 0).
    """
    parts = title.split()
    if len(parts) < 2:
        return "", 0.0

    token = parts[-1].removeprefix("#").removeprefix("v").removeprefix("V")
    if not _INDEX_TOKEN_RE.fullmatch(token):
        return "", 0.0

    series = " ".join(parts[:-1]).strip().removesuffix("-").strip()
    return series, float(token)


def _build_metadata(filename: str, page_count: int, comic_info: bytes | None) -> Metadata:
    """Filename-derived metadata, overridden field by field by ComicInfo.xml."""
    title = PurePath(filename).stem
    series, series_index = series_from_filename(title)
    meta = Metadata(
        title=title,
        series=series,
        series_index=series_index,
        page_count=page_count,
        content_type=ContentType.COMIC,
    )

    info = parse_comic_info(comic_info) if comic_info is not None else None
    if info is not None:
        if info.title:
            meta.title = info.title
        if info.series:
            meta.series = info.series
        if info.number > 0:
            meta.series_index = info.number
        if info.writer:
            meta.author = info.writer
    return meta


# --- Shared page access ---


def _list_pages(path: Path, opener: Callable[[Path], ArchiveReader]) -> list[str]:
    with opener(path) as reader:
        return page_names(reader.entries())


def _read_sorted_page(
    path: Path, index: int, opener: Callable[[Path], ArchiveReader]
) -> tuple[bytes, str]:
    """Read the page at a sorted position; returns (data, entry name).

    Seekable readers do this in one pass. Forward-only readers cannot: the
    listing needed to sort the names uses up the handle, so the archive is
    reopened and streamed a second time until the target name is reached.
    """
    with opener(path) as reader:
        names = page_names(reader.entries())
        _check_index(index, len(names))
        target = names[index]
        if reader.seekable:
            return reader.read(target), target

    # Second full pass over a forward-only stream.
    with opener(path) as reader:
        return reader.read(target), target


def _extract_cover(path: Path, opener: Callable[[Path], ArchiveReader]) -> CoverImage:
    try:
        data, name = _read_sorted_page(path, 0, opener)
    except PageIndexOutOfRangeError as exc:
        raise NoImagesFoundError(f"No images found in {path}") from exc
    return CoverImage(data=data, extension=PurePath(name).suffix.lower())


def _get_page(
    path: Path, index: int, opener: Callable[[Path], ArchiveReader]
) -> tuple[bytes, str]:
    data, name = _read_sorted_page(path, index, opener)
    return data, image_content_type(name)


def _validate(path: Path, opener: Callable[[Path], ArchiveReader]) -> None:
    if not _list_pages(path, opener):
        raise NoImagesFoundError(f"Comic archive contains no images: {path}")


# --- CBZ (zip, seekable) ---


def parse_cbz(
    path: Path, filename: str | None = None, *, opener: CbzOpener = ZipArchiveReader
) -> Metadata:
    """Extract metadata from a CBZ file.

    Args:
        path: Path to the CBZ file.
        filename: Name to derive the fallback title from, when the archive
            sits under a temporary name. Defaults to the file's own name.
        opener: Reader factory, replaceable in tests.

    Raises:
        ArchiveOpenError: If the file is not a zip archive.
    """
    path = Path(path)
    with opener(path) as reader:
        entries = reader.entries()
        comic_info = None
        for entry in entries:
            if entry.basename.lower() == COMIC_INFO_NAME:
                comic_info = reader.read(entry.name)
                break
    return _build_metadata(filename or path.name, len(page_names(entries)), comic_info)


def validate_cbz(path: Path, *, opener: CbzOpener = ZipArchiveReader) -> None:
    """Raise NoImagesFoundError unless the CBZ holds at least one page image."""
    _validate(Path(path), opener)


def get_page_list_cbz(path: Path, *, opener: CbzOpener = ZipArchiveReader) -> list[str]:
    return _list_pages(Path(path), opener)


def get_page_count_cbz(path: Path, *, opener: CbzOpener = ZipArchiveReader) -> int:
    return len(_list_pages(Path(path), opener))


def extract_cover_cbz(path: Path, *, opener: CbzOpener = ZipArchiveReader) -> CoverImage:
    """Return the first page in sorted order as the cover."""
    return _extract_cover(Path(path), opener)


def get_page_cbz(
    path: Path, index: int, *, opener: CbzOpener = ZipArchiveReader
) -> tuple[bytes, str]:
    """Return (bytes, MIME type) of the page at a zero-based sorted position.

    Raises:
        PageIndexOutOfRangeError: If index < 0 or index >= page count.
    """
    return _get_page(Path(path), index, opener)


# --- CBR (RAR, forward-only) ---


def parse_cbr(
    path: Path, filename: str | None = None, *, opener: CbrOpener = RarStreamReader
) -> Metadata:
    """Extract metadata from a CBR file in a single pass.

    ComicInfo.xml is read while the stream is positioned on it, so metadata
    costs one pass even on the forward-only reader.
    """
    path = Path(path)
    entries: list[ArchiveEntry] = []
    comic_info = None
    with opener(path) as reader:
        for item in reader.stream():
            entries.append(item.entry)
            if comic_info is None and item.entry.basename.lower() == COMIC_INFO_NAME:
                comic_info = item.read()
    return _build_metadata(filename or path.name, len(page_names(entries)), comic_info)


def validate_cbr(path: Path, *, opener: CbrOpener = RarStreamReader) -> None:
    """Raise NoImagesFoundError unless the CBR holds at least one page image."""
    _validate(Path(path), opener)


def get_page_list_cbr(path: Path, *, opener: CbrOpener = RarStreamReader) -> list[str]:
    """Sorted page names in one pass. Fetch this once when reading many pages."""
    return _list_pages(Path(path), opener)


def get_page_count_cbr(path: Path, *, opener: CbrOpener = RarStreamReader) -> int:
    return len(_list_pages(Path(path), opener))


def extract_cover_cbr(path: Path, *, opener: CbrOpener = RarStreamReader) -> CoverImage:
    """Return the first sorted page as the cover. Costs two passes over the archive."""
    return _extract_cover(Path(path), opener)


def get_page_cbr(
    path: Path, index: int, *, opener: CbrOpener = RarStreamReader
) -> tuple[bytes, str]:
    """Return (bytes, MIME type) of a page. Costs two passes over the archive per call.

    Raises:
        PageIndexOutOfRangeError: If index < 0 or index >= page count.
    """
    return _get_page(Path(path), index, opener)
