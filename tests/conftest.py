# ABOUTME: Shared pytest fixtures for Bindle tests.
# ABOUTME: Provides sample EPUB and CBZ archives, corrupt files, and a temporary library.

from collections.abc import Iterator
from pathlib import Path

import pytest
from ebooklib import epub

from bindle.config import LibraryPaths
from bindle.db.catalog import LibraryCatalog
from bindle.db.connection import open_library
from tests.fixtures.archives import build_cbz, comic_info_xml


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Create a minimal valid EPUB file with known metadata."""
    book = epub.EpubBook()

    book.set_identifier("test-id-name-of-the-rose")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco")

    book.add_metadata("DC", "publisher", "Harcourt")
    book.add_metadata("DC", "description", "A mystery set in a medieval monastery.")

    # Add a minimal chapter so the EPUB is structurally valid
    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
    chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
    book.add_item(chapter)

    book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """Create a corrupt file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath


@pytest.fixture
def sample_cbz(tmp_path: Path) -> Path:
    """A three-page CBZ whose pages are stored out of order, with ComicInfo.xml."""
    return build_cbz(
        tmp_path / "Saga 001.cbz",
        ["003.png", "001.png", "002.jpg"],
        comic_info=comic_info_xml(
            Title="Chapter One", Series="Saga", Number="1", Writer="Brian K. Vaughan"
        ),
        extra_files={"notes.txt": b"not a page", ".hidden.png": b"skip me"},
    )


@pytest.fixture
def empty_cbz(tmp_path: Path) -> Path:
    """A CBZ with no page images at all."""
    return build_cbz(tmp_path / "empty.cbz", [], extra_files={"readme.txt": b"nothing here"})


@pytest.fixture
def library(tmp_path: Path) -> LibraryPaths:
    """An empty library layout under a temporary directory."""
    return LibraryPaths(tmp_path / "library").ensure()


@pytest.fixture
def catalog(tmp_path: Path) -> Iterator[LibraryCatalog]:
    """Provide a LibraryCatalog backed by a temporary database."""
    conn = open_library(tmp_path / "test.db")
    yield LibraryCatalog(conn)
    conn.close()
