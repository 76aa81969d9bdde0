# ABOUTME: Builders for EPUB and CBZ test archives plus a forward-only RAR reader fake.
# ABOUTME: RAR archives cannot be written from Python, so CBR behaviour runs through FakeRarReader.

import zipfile
from dataclasses import dataclass, field
from pathlib import Path

from bindle.errors import ArchiveReadError
from bindle.formats.archive import ArchiveEntry, StreamEntry

# Smallest byte strings that carry a recognizable image signature.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16

CONTAINER_XML = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


@dataclass
class EpubChapter:
    """A chapter to place in a hand-built EPUB."""

    id: str
    href: str
    body: str
    title: str = ""

    def render(self) -> str:
        head = f"<title>{self.title}</title>" if self.title else ""
        return (
            '<?xml version="1.0" encoding="utf-8"?>\n'
            '<html xmlns="http://www.w3.org/1999/xhtml">'
            f"<head>{head}</head><body>{self.body}</body></html>"
        )


@dataclass
class EpubSpec:
    """Everything build_epub needs to write a small EPUB by hand."""

    title: str | None = "Test Book"
    creator: str | None = "Test Author"
    metadata_xml: str = ""
    chapters: list[EpubChapter] = field(
        default_factory=lambda: [
            EpubChapter("ch1", "text/ch1.xhtml", "<h1>One</h1><p>First chapter.</p>", "One")
        ]
    )
    extra_spine_ids: list[str] = field(default_factory=list)
    manifest_xml: str = ""
    extra_files: dict[str, bytes] = field(default_factory=dict)
    opf_path: str = "OEBPS/content.opf"


def build_epub(path: Path, spec: EpubSpec | None = None) -> Path:
    """Write an EPUB archive described by spec and return its path."""
    spec = spec or EpubSpec()
    metadata = []
    if spec.title is not None:
        metadata.append(f"<dc:title>{spec.title}</dc:title>")
    if spec.creator is not None:
        metadata.append(f"<dc:creator>{spec.creator}</dc:creator>")
    metadata.append(spec.metadata_xml)

    manifest = [
        f'<item id="{ch.id}" href="{ch.href}" media-type="application/xhtml+xml"/>'
        for ch in spec.chapters
    ]
    manifest.append(spec.manifest_xml)
    spine = [f'<itemref idref="{ch.id}"/>' for ch in spec.chapters]
    spine.extend(f'<itemref idref="{item_id}"/>' for item_id in spec.extra_spine_ids)

    opf = (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="uid">'
        '<metadata xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:opf="http://www.idpf.org/2007/opf">'
        + "".join(metadata)
        + "</metadata><manifest>"
        + "".join(manifest)
        + "</manifest><spine>"
        + "".join(spine)
        + "</spine></package>"
    )

    base = spec.opf_path.rpartition("/")[0]
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=spec.opf_path))
        zf.writestr(spec.opf_path, opf)
        for chapter in spec.chapters:
            name = f"{base}/{chapter.href}" if base else chapter.href
            zf.writestr(name, chapter.render())
        for name, data in spec.extra_files.items():
            zf.writestr(name, data)
    return path


def build_cbz(
    path: Path,
    pages: list[str],
    *,
    comic_info: str | None = None,
    extra_files: dict[str, bytes] | None = None,
) -> Path:
    """Write a CBZ holding the given page names (in this physical order)."""
    with zipfile.ZipFile(path, "w") as zf:
        for number, name in enumerate(pages):
            zf.writestr(name, page_bytes(name, number))
        if comic_info is not None:
            zf.writestr("ComicInfo.xml", comic_info)
        for name, data in (extra_files or {}).items():
            zf.writestr(name, data)
    return path


def page_bytes(name: str, number: int) -> bytes:
    """The bytes build_cbz stores for a page; unique per name so pages can be told apart."""
    return PNG_BYTES + name.encode() + bytes([number % 256])


def comic_info_xml(**fields: str) -> str:
    body = "".join(f"<{key}>{value}</{key}>" for key, value in fields.items())
    return f'<?xml version="1.0"?><ComicInfo>{body}</ComicInfo>'


class FakeRarReader:
    """Forward-only reader over in-memory entries, one pass per handle.

    Behaves like RarStreamReader: the first of stream(), entries(), or read()
    uses up the handle.
    """

    seekable = False

    def __init__(self, path: Path, files: dict[str, bytes], fail_on: str | None = None) -> None:
        self.path = path
        self._files = files
        self._fail_on = fail_on
        self._consumed = False
        self.closed = False

    def __enter__(self) -> "FakeRarReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def stream(self):
        if self._consumed:
            raise ArchiveReadError(f"RAR stream already consumed for {self.path}; reopen the archive")
        self._consumed = True
        for name, data in self._files.items():
            yield StreamEntry(
                entry=ArchiveEntry(name=name, size=len(data)),
                read=lambda name=name, data=data: self._read(name, data),
            )

    def _read(self, name: str, data: bytes) -> bytes:
        if name == self._fail_on:
            raise ArchiveReadError(f"Failed to read {name} from {self.path}: CRC error")
        return data

    def entries(self) -> list[ArchiveEntry]:
        return [item.entry for item in self.stream()]

    def read(self, name: str) -> bytes:
        for item in self.stream():
            if item.entry.name == name:
                return item.read()
        raise ArchiveReadError(f"Entry not found in {self.path}: {name}")

    def close(self) -> None:
        self.closed = True


class FakeRarOpener:
    """Opener for FakeRarReader that records every open call."""

    def __init__(self, files: dict[str, bytes], fail_on: str | None = None) -> None:
        self.files = files
        self.fail_on = fail_on
        self.opens = 0
        self.readers: list[FakeRarReader] = []

    def __call__(self, path: Path) -> FakeRarReader:
        self.opens += 1
        reader = FakeRarReader(Path(path), self.files, self.fail_on)
        self.readers.append(reader)
        return reader
