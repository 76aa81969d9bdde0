# ABOUTME: EPUB metadata extraction and chapter access over the zip archive reader.
# ABOUTME: Resolves container.xml -> OPF package document -> metadata, manifest, and spine.

import logging
import math
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from lxml import etree

from bindle.errors import ArchiveOpenError, ArchiveReadError, InvalidFormatError
from bindle.formats.archive import ZipArchiveReader
from bindle.formats.text import strip_html
from bindle.metadata.isbn import find_isbn
from bindle.metadata.types import UNKNOWN_AUTHOR, ContentType, CoverImage, Metadata

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


@dataclass(frozen=True)
class Chapter:
    """One spine entry. Index is zero-based and contiguous in spine order."""

    index: int
    id: str
    href: str
    title: str


@dataclass(frozen=True)
class _ManifestItem:
    id: str
    href: str
    media_type: str
    properties: str


@dataclass
class _Package:
    """Parsed OPF package document plus the archive path it came from."""

    opf_path: str
    root: etree._Element

    @property
    def base_dir(self) -> str:
        return posixpath.dirname(self.opf_path)

    def resolve(self, href: str) -> str:
        """Resolve a manifest href (relative to the OPF) to an archive entry name."""
        href = unquote(href.split("#", 1)[0])
        return posixpath.normpath(posixpath.join(self.base_dir, href))


# --- XML helpers ---

_XML_PARSER_OPTIONS = {"recover": True, "resolve_entities": False, "no_network": True}


def _parse_xml(data: bytes, label: str) -> etree._Element:
    """Parse XML bytes leniently; malformed documents raise InvalidFormatError."""
    parser = etree.XMLParser(**_XML_PARSER_OPTIONS)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise InvalidFormatError(f"Malformed {label}: {exc}") from exc
    if root is None:
        raise InvalidFormatError(f"Malformed {label}: empty document")
    return root


def _local(element: etree._Element) -> str:
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def _attr(element: etree._Element, name: str) -> str | None:
    """Look up an attribute by local name, ignoring its namespace."""
    for key, value in element.attrib.items():
        if etree.QName(key).localname == name:
            return value
    return None


def _text(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


def _find_all(root: etree._Element, name: str) -> list[etree._Element]:
    return [el for el in root.iter() if _local(el) == name]


def _first_text(parent: etree._Element, name: str) -> str:
    """Text of the first non-empty element with the given local name."""
    for element in _find_all(parent, name):
        value = _text(element)
        if value:
            return value
    return ""


def _parse_float(value: str | None) -> float | None:
    if not value:
        return None
    try:
        number = float(value.strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


# --- Package loading ---


def _locate_package(reader: ZipArchiveReader) -> str:
    """Read container.xml and return the archive path of the package document."""
    if reader.find(CONTAINER_PATH) is None:
        raise InvalidFormatError(f"Missing {CONTAINER_PATH}: {reader.path}")

    container = _parse_xml(reader.read(CONTAINER_PATH), CONTAINER_PATH)
    for rootfile in _find_all(container, "rootfile"):
        full_path = (_attr(rootfile, "full-path") or "").strip()
        if full_path:
            return full_path
    raise InvalidFormatError(f"No package document declared in {reader.path}")


def _load_package(reader: ZipArchiveReader) -> _Package:
    opf_path = _locate_package(reader)
    resolved = reader.find(opf_path)
    if resolved is None:
        raise InvalidFormatError(f"Package document {opf_path} not found in {reader.path}")
    return _Package(opf_path=resolved, root=_parse_xml(reader.read(resolved), opf_path))


def _metadata_block(package: _Package) -> etree._Element:
    blocks = _find_all(package.root, "metadata")
    return blocks[0] if blocks else package.root


def _manifest(package: _Package) -> list[_ManifestItem]:
    items = []
    for item in _find_all(package.root, "item"):
        item_id = item.get("id")
        href = item.get("href")
        if not item_id or not href:
            continue
        items.append(
            _ManifestItem(
                id=item_id,
                href=href,
                media_type=item.get("media-type", ""),
                properties=item.get("properties", ""),
            )
        )
    return items


def _spine(package: _Package) -> list[tuple[str, str]]:
    """Return (manifest id, resolved entry name) pairs in reading order.

    Spine references to unknown manifest ids are dropped so that chapter
    indexes stay contiguous.
    """
    hrefs = {item.id: item.href for item in _manifest(package)}
    spine = []
    for itemref in _find_all(package.root, "itemref"):
        idref = itemref.get("idref", "")
        href = hrefs.get(idref)
        if not href:
            continue
        spine.append((idref, package.resolve(href)))
    return spine


def _decode(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


# --- Metadata ---


def _identifiers(block: etree._Element) -> list[tuple[str, str | None]]:
    return [(_text(el), _attr(el, "scheme")) for el in _find_all(block, "identifier")]


def _series(block: etree._Element) -> tuple[str, float]:
    """Series name and index from Calibre meta tags or EPUB 3 collection properties."""
    series = ""
    index = 0.0
    for meta in _find_all(block, "meta"):
        name = meta.get("name")
        prop = meta.get("property")
        if name == "calibre:series":
            series = (meta.get("content") or "").strip()
        elif name == "calibre:series_index":
            index = _parse_float(meta.get("content")) or index
        if prop == "belongs-to-collection":
            series = _text(meta)
        elif prop == "group-position":
            index = _parse_float(_text(meta)) or index
    return series, index


_COMIC_TERMS = (
    "comic",
    "comics",
    "graphic novel",
    "graphic novels",
    "manga",
    "manhwa",
    "manhua",
    "bande dessinée",
    "sequential art",
    "comic book",
    "comic books",
)

_COMIC_PUBLISHERS = (
    "marvel",
    "dc comics",
    "dark horse",
    "image comics",
    "idw",
    "boom! studios",
    "dynamite",
    "valiant",
    "oni press",
    "viz media",
    "kodansha",
    "shueisha",
    "seven seas",
    "yen press",
    "tokyopop",
)

_SERIAL_TITLE_MARKERS = (" vol.", " vol ", " issue ", " #")


def _mentions_comic(value: str) -> bool:
    lowered = value.lower()
    return any(term in lowered for term in _COMIC_TERMS)


def _detect_content_type(package: _Package, meta: Metadata) -> ContentType:
    """Guess whether an EPUB is really a comic packaged as an e-book."""
    if any(_mentions_comic(subject) for subject in meta.subjects):
        return ContentType.COMIC

    for tag in _find_all(_metadata_block(package), "meta"):
        if tag.get("name") in ("calibre:user_categories", "calibre:tags"):
            if _mentions_comic(tag.get("content") or ""):
                return ContentType.COMIC

    publisher = meta.publisher.lower()
    if publisher and any(name in publisher for name in _COMIC_PUBLISHERS):
        return ContentType.COMIC

    media_types = [item.media_type for item in _manifest(package)]
    image_count = sum(1 for mt in media_types if mt.startswith("image/"))

    title = meta.title.lower()
    if any(marker in title for marker in _SERIAL_TITLE_MARKERS):
        content_items = sum(
            1
            for mt in media_types
            if mt.startswith(("application/xhtml", "text/html", "image/"))
        )
        if content_items and image_count / content_items > 0.7:
            return ContentType.COMIC

    spine_count = len(_find_all(package.root, "itemref"))
    if spine_count and image_count > spine_count * 2:
        for subject in meta.subjects:
            lowered = subject.lower()
            if "fiction" in lowered or "novel" in lowered:
                return ContentType.BOOK
        if image_count / spine_count > 5:
            return ContentType.COMIC

    return ContentType.BOOK


def _build_metadata(package: _Package, path: Path) -> Metadata:
    block = _metadata_block(package)
    series, series_index = _series(block)

    meta = Metadata(
        title=_first_text(block, "title") or path.stem,
        author=_first_text(block, "creator") or UNKNOWN_AUTHOR,
        series=series,
        series_index=series_index,
        isbn=find_isbn(_identifiers(block)),
        publisher=_first_text(block, "publisher"),
        publish_date=_first_text(block, "date"),
        description=strip_html(_first_text(block, "description")),
        language=_first_text(block, "language"),
        subjects=[s for s in (_text(el) for el in _find_all(block, "subject")) if s],
    )
    meta.content_type = _detect_content_type(package, meta)
    return meta


def parse_epub(path: Path) -> Metadata:
    """Extract metadata from an EPUB file.

    Args:
        path: Path to the EPUB file.

    Returns:
        Metadata populated from the OPF package document. Title falls back to
        the filename stem and author to "Unknown".

    Raises:
        ArchiveOpenError: If the file is not a zip archive.
        InvalidFormatError: If no package document can be resolved.
    """
    path = Path(path)
    with ZipArchiveReader(path) as reader:
        package = _load_package(reader)
    return _build_metadata(package, path)


def validate_epub(path: Path) -> None:
    """Check that a file opens as a zip archive and resolves a package document.

    Raises:
        InvalidFormatError: If either check fails.
    """
    try:
        with ZipArchiveReader(Path(path)) as reader:
            _load_package(reader)
    except (ArchiveOpenError, ArchiveReadError) as exc:
        raise InvalidFormatError(f"Invalid EPUB file: {path}: {exc}") from exc


# --- Cover ---


def _find_cover_item(package: _Package) -> _ManifestItem | None:
    items = _manifest(package)
    by_id = {item.id: item for item in items}

    for meta in _find_all(_metadata_block(package), "meta"):
        if meta.get("name") == "cover":
            item = by_id.get(meta.get("content") or "")
            if item is not None:
                return item

    for item in items:
        if "cover-image" in item.properties.split():
            return item

    for item in items:
        if "cover" in item.id.lower() and item.media_type.startswith("image/"):
            return item

    return None


def extract_cover_epub(path: Path) -> CoverImage | None:
    """Extract the cover image declared by an EPUB, if any.

    Looks at the OPF ``cover`` meta, then the EPUB 3 ``cover-image``
    manifest property, then any image item whose id mentions "cover".
    """
    with ZipArchiveReader(Path(path)) as reader:
        package = _load_package(reader)
        item = _find_cover_item(package)
        if item is None:
            return None
        entry_name = package.resolve(item.href)
        try:
            data = reader.read(entry_name)
        except ArchiveReadError as exc:
            logger.warning("Cover %s listed but unreadable in %s: %s", entry_name, path, exc)
            return None
    return CoverImage(data=data, extension=posixpath.splitext(entry_name)[1].lower())


# --- Chapters ---

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_H1_RE = re.compile(r"<h1[^>]*>([^<]+)</h1>", re.IGNORECASE)


def _chapter_title(reader: ZipArchiveReader, entry_name: str, index: int) -> str:
    fallback = f"Chapter {index + 1}"
    try:
        content = _decode(reader.read(entry_name))
    except ArchiveReadError:
        return fallback

    match = _TITLE_RE.search(content)
    if match:
        title = match.group(1).strip()
        if title and title != "Unknown":
            return title

    match = _H1_RE.search(content)
    if match and match.group(1).strip():
        return match.group(1).strip()

    return fallback


def get_table_of_contents(path: Path) -> list[Chapter]:
    """Return the chapters of an EPUB in spine order.

    Recomputed from the archive on every call. Indexes run 0..N-1.
    """
    with ZipArchiveReader(Path(path)) as reader:
        package = _load_package(reader)
        return [
            Chapter(
                index=index,
                id=item_id,
                href=entry_name,
                title=_chapter_title(reader, entry_name, index),
            )
            for index, (item_id, entry_name) in enumerate(_spine(package))
        ]


def get_chapter_content(path: Path, index: int) -> str:
    """Return the raw markup of the chapter at a spine position.

    An index outside the spine yields an empty string rather than an error.
    """
    with ZipArchiveReader(Path(path)) as reader:
        spine = _spine(_load_package(reader))
        if index < 0 or index >= len(spine):
            return ""
        return _decode(reader.read(spine[index][1]))


def get_chapter_text(path: Path, index: int) -> str:
    """Return the plain text of the chapter at a spine position."""
    return strip_html(get_chapter_content(path, index))
