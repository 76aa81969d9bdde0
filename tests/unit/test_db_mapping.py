# ABOUTME: Unit tests for Metadata to/from database row mapping.
# ABOUTME: Validates JSON serialization of subjects, round-trips, null handling, and BookRecord.

import json
import sqlite3
from pathlib import Path

from bindle.db.mapping import metadata_to_row, row_to_metadata, row_to_record
from bindle.metadata.types import ContentType, Metadata


def _full_row(**overrides: object) -> dict:
    row = {
        "id": "b1",
        "owner_id": "",
        "file_format": "cbz",
        "file_path": "/library/books/Saga/Saga 001.cbz",
        "cover_path": None,
        "file_size": 42,
        "file_hash": None,
        "date_added": "2024-01-01T00:00:00.000",
        **metadata_to_row(Metadata(title="Saga 001", content_type=ContentType.COMIC)),
    }
    row.update(overrides)
    return row


class TestMetadataToRow:
    """Tests for metadata_to_row conversion."""

    def test_includes_all_metadata_columns(self) -> None:
        row = metadata_to_row(Metadata(title="Test Book"))
        assert set(row) == {
            "title", "author", "series", "series_index", "page_count", "content_type",
            "isbn", "publisher", "publish_date", "description", "language", "subjects",
        }

    def test_subjects_serialized_as_json(self) -> None:
        row = metadata_to_row(Metadata(title="T", subjects=["Comics", "Sci-Fi"]))
        assert json.loads(row["subjects"]) == ["Comics", "Sci-Fi"]

    def test_empty_subjects_serialized_as_empty_list(self) -> None:
        assert metadata_to_row(Metadata(title="T"))["subjects"] == "[]"

    def test_content_type_stored_as_value(self) -> None:
        row = metadata_to_row(Metadata(title="T", content_type=ContentType.COMIC))
        assert row["content_type"] == "comic"


class TestRowToMetadata:
    """Tests for row_to_metadata conversion."""

    def test_round_trip(self) -> None:
        meta = Metadata(
            title="Saga 001",
            author="Brian K. Vaughan",
            series="Saga",
            series_index=1.0,
            page_count=24,
            content_type=ContentType.COMIC,
            subjects=["Comics"],
        )
        assert row_to_metadata(metadata_to_row(meta)) == meta

    def test_null_subjects_become_empty_list(self) -> None:
        row = metadata_to_row(Metadata(title="T"))
        row["subjects"] = None
        assert row_to_metadata(row).subjects == []


class TestRowToRecord:
    """Tests for row_to_record conversion."""

    def test_null_hash_and_cover(self) -> None:
        record = row_to_record(_full_row())
        assert record.file_hash == ""
        assert record.cover_path is None
        assert record.file_path == Path("/library/books/Saga/Saga 001.cbz")
        assert record.metadata.content_type is ContentType.COMIC

    def test_paths_converted(self) -> None:
        record = row_to_record(_full_row(cover_path="/covers/b1.png", file_hash="abc"))
        assert record.cover_path == Path("/covers/b1.png")
        assert record.file_hash == "abc"

    def test_works_with_sqlite_row(self) -> None:
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        row = _full_row()
        columns = ", ".join(f":{key} AS {key}" for key in row)
        sqlite_row = conn.execute(f"SELECT {columns}", row).fetchone()
        conn.close()

        record = row_to_record(sqlite_row)

        assert record.id == "b1"
        assert record.file_size == 42
        assert record.metadata.title == "Saga 001"
