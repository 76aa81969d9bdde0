# ABOUTME: Unit tests for the file organizer: sanitization, conflicts, moves, and cleanup.
# ABOUTME: Simulates cross-device renames by patching os.rename.

import errno
import os
from pathlib import Path
from unittest import mock

import pytest

from bindle.core.organizer import (
    FileOrganizer,
    clean_empty_dirs,
    move_file,
    resolve_conflict,
    sanitize_filename,
)


def _cross_device(*args, **kwargs):
    raise OSError(errno.EXDEV, "Invalid cross-device link")


class TestSanitizeFilename:
    """Tests for sanitize_filename."""

    def test_removes_separators_and_keeps_words(self) -> None:
        result = sanitize_filename("Foo/Bar: Baz?")
        assert not set("/:?") & set(result)
        assert result.split() == ["Foo", "Bar", "Baz"]

    def test_all_unsafe_characters(self) -> None:
        result = sanitize_filename('a\\b/c:d*e?f"g<h>i|j\x01k')
        assert result == "a b c d e f g h i j k"

    def test_collapses_runs(self) -> None:
        assert sanitize_filename("a___b   c _ d") == "a b c d"

    def test_trims_dots_and_spaces(self) -> None:
        assert sanitize_filename("  ..Hidden Name.. ") == "Hidden Name"

    def test_truncates_to_200(self) -> None:
        assert len(sanitize_filename("x" * 500)) == 200

    def test_only_unsafe_becomes_empty(self) -> None:
        assert sanitize_filename("???") == ""


class TestResolveConflict:
    """Tests for resolve_conflict."""

    def test_free_target_unchanged(self, tmp_path: Path) -> None:
        target = tmp_path / "Book.epub"
        assert resolve_conflict(target) == target

    def test_taken_target_gets_suffix(self, tmp_path: Path) -> None:
        (tmp_path / "Book.epub").write_bytes(b"1")
        (tmp_path / "Book (2).epub").write_bytes(b"2")
        assert resolve_conflict(tmp_path / "Book.epub") == tmp_path / "Book (3).epub"

    def test_target_that_is_the_source(self, tmp_path: Path) -> None:
        target = tmp_path / "Book.epub"
        target.write_bytes(b"1")
        assert resolve_conflict(target, target) == target

    def test_exhausted_attempts_fall_back_to_target(self, tmp_path: Path) -> None:
        for name in ("Book.epub", "Book (2).epub", "Book (3).epub"):
            (tmp_path / name).write_bytes(b"x")
        target = tmp_path / "Book.epub"
        assert resolve_conflict(target, max_attempts=4) == target


class TestMoveFile:
    """Tests for move_file."""

    def test_rename(self, tmp_path: Path) -> None:
        src = tmp_path / "a.bin"
        src.write_bytes(b"payload")
        dst = tmp_path / "b.bin"
        move_file(src, dst)
        assert not src.exists()
        assert dst.read_bytes() == b"payload"

    def test_cross_device_falls_back_to_copy(self, tmp_path: Path) -> None:
        src = tmp_path / "a.bin"
        src.write_bytes(b"payload")
        dst = tmp_path / "b.bin"
        with mock.patch("bindle.core.organizer.os.rename", side_effect=_cross_device):
            move_file(src, dst)
        assert not src.exists()
        assert dst.read_bytes() == b"payload"

    def test_failed_copy_removes_partial_destination(self, tmp_path: Path) -> None:
        src = tmp_path / "a.bin"
        src.write_bytes(b"payload")
        dst = tmp_path / "b.bin"
        with (
            mock.patch("bindle.core.organizer.os.rename", side_effect=_cross_device),
            mock.patch(
                "bindle.core.organizer.shutil.copyfileobj", side_effect=OSError("disk full")
            ),
            pytest.raises(OSError, match="disk full"),
        ):
            move_file(src, dst)
        assert src.exists()
        assert not dst.exists()


class TestCleanEmptyDirs:
    """Tests for clean_empty_dirs."""

    def test_removes_empty_chain_up_to_root(self, tmp_path: Path) -> None:
        root = tmp_path / "books"
        leaf = root / "Author" / "Series"
        leaf.mkdir(parents=True)
        clean_empty_dirs(leaf, root)
        assert not (root / "Author").exists()
        assert root.exists()

    def test_stops_at_non_empty(self, tmp_path: Path) -> None:
        root = tmp_path / "books"
        leaf = root / "Author" / "Series"
        leaf.mkdir(parents=True)
        (root / "Author" / "other.epub").write_bytes(b"x")
        clean_empty_dirs(leaf, root)
        assert not leaf.exists()
        assert (root / "Author").exists()

    def test_outside_root_untouched(self, tmp_path: Path) -> None:
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        clean_empty_dirs(outside, tmp_path / "books")
        assert outside.exists()


class TestFileOrganizer:
    """Tests for FileOrganizer."""

    @pytest.fixture()
    def books_dir(self, tmp_path: Path) -> Path:
        books = tmp_path / "books"
        books.mkdir()
        return books

    def test_canonical_path_with_series(self, books_dir: Path) -> None:
        organizer = FileOrganizer(books_dir)
        path = organizer.canonical_path("Frank Herbert", "Dune", "Dune Messiah", ".epub")
        assert path == books_dir / "Frank Herbert" / "Dune" / "Dune Messiah.epub"

    def test_canonical_path_without_series(self, books_dir: Path) -> None:
        path = FileOrganizer(books_dir).canonical_path("Author", "", "Title", ".cbz")
        assert path == books_dir / "Author" / "Title.cbz"

    def test_canonical_path_unknowns(self, books_dir: Path) -> None:
        path = FileOrganizer(books_dir).canonical_path("", "", "///", ".cbr")
        assert path == books_dir / "Unknown Author" / "Unknown Title.cbr"

    def test_reorganize_moves_book_and_cover(self, books_dir: Path) -> None:
        book = books_dir / "incoming" / "x.CBZ"
        book.parent.mkdir()
        book.write_bytes(b"comic")
        cover = books_dir / "incoming" / "x-cover.JPG"
        cover.write_bytes(b"cover")

        result = FileOrganizer(books_dir).reorganize(book, cover, "Vaughan", "Saga", "Saga 001")

        assert result.book_path == books_dir / "Vaughan" / "Saga" / "Saga 001.cbz"
        assert result.cover_path == books_dir / "Vaughan" / "Saga" / "Saga 001.jpg"
        assert result.book_path.read_bytes() == b"comic"
        assert result.cover_path.read_bytes() == b"cover"
        assert not (books_dir / "incoming").exists()

    def test_conflicting_books_both_survive(self, books_dir: Path) -> None:
        organizer = FileOrganizer(books_dir)
        first = books_dir / "one.epub"
        first.write_bytes(b"first")
        second = books_dir / "two.epub"
        second.write_bytes(b"second")

        a = organizer.reorganize(first, None, "Author", "", "Same Title")
        b = organizer.reorganize(second, None, "Author", "", "Same Title")

        assert a.book_path == books_dir / "Author" / "Same Title.epub"
        assert b.book_path == books_dir / "Author" / "Same Title (2).epub"
        assert a.book_path.read_bytes() == b"first"
        assert b.book_path.read_bytes() == b"second"

    def test_already_in_place_is_noop(self, books_dir: Path) -> None:
        organizer = FileOrganizer(books_dir)
        target = books_dir / "Author" / "Title.epub"
        target.parent.mkdir()
        target.write_bytes(b"book")

        result = organizer.reorganize(target, None, "Author", "", "Title")

        assert result.book_path == target
        assert target.read_bytes() == b"book"

    def test_cover_failure_keeps_original_path(self, books_dir: Path) -> None:
        book = books_dir / "b.epub"
        book.write_bytes(b"book")
        cover = books_dir / "c.png"
        cover.write_bytes(b"cover")
        real_move = move_file

        def flaky_move(src: Path, dst: Path) -> None:
            if src == cover:
                raise PermissionError("read-only")
            real_move(src, dst)

        with mock.patch("bindle.core.organizer.move_file", side_effect=flaky_move):
            result = FileOrganizer(books_dir).reorganize(book, cover, "A", "", "T")

        assert result.book_path == books_dir / "A" / "T.epub"
        assert result.cover_path == cover
        assert cover.exists()

    def test_book_move_failure_is_fatal_and_cleans_up(self, books_dir: Path) -> None:
        book = books_dir / "b.epub"
        book.write_bytes(b"book")

        with (
            mock.patch("bindle.core.organizer.move_file", side_effect=OSError("boom")),
            pytest.raises(OSError, match="boom"),
        ):
            FileOrganizer(books_dir).reorganize(book, None, "New Author", "", "T")

        assert book.exists()
        assert not (books_dir / "New Author").exists()

    def test_cross_device_reorganize(self, books_dir: Path) -> None:
        book = books_dir / "b.epub"
        book.write_bytes(b"book")
        with mock.patch("bindle.core.organizer.os.rename", side_effect=_cross_device):
            result = FileOrganizer(books_dir).reorganize(book, None, "A", "", "T")
        assert result.book_path.read_bytes() == b"book"
        assert not book.exists()
        assert os.listdir(books_dir) == ["A"]
