# ABOUTME: Converts between the Metadata dataclass and SQLite rows of the books table.
# ABOUTME: Handles JSON serialization of the subjects list and Path conversion of file columns.

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bindle.metadata.types import ContentType, Metadata


@dataclass
class BookRecord:
    """A cataloged book: Metadata plus storage and identity fields.

    ``file_hash`` is an empty string until a digest has been computed.
    ``owner_id`` is empty for books in the unowned pool.
    """

    id: str
    owner_id: str
    metadata: Metadata
    file_format: str
    file_path: Path
    cover_path: Path | None
    file_size: int
    file_hash: str
    date_added: str


def metadata_to_row(metadata: Metadata) -> dict[str, Any]:
    """Convert Metadata to the books-table columns it owns."""
    return {
        "title": metadata.title,
        "author": metadata.author,
        "series": metadata.series,
        "series_index": metadata.series_index,
        "page_count": metadata.page_count,
        "content_type": metadata.content_type.value,
        "isbn": metadata.isbn,
        "publisher": metadata.publisher,
        "publish_date": metadata.publish_date,
        "description": metadata.description,
        "language": metadata.language,
        "subjects": json.dumps(metadata.subjects),
    }


def row_to_metadata(row: Any) -> Metadata:
    """Convert a database row (dict-like) back to Metadata."""
    return Metadata(
        title=row["title"],
        author=row["author"],
        series=row["series"],
        series_index=row["series_index"],
        page_count=row["page_count"],
        content_type=ContentType(row["content_type"]),
        isbn=row["isbn"],
        publisher=row["publisher"],
        publish_date=row["publish_date"],
        description=row["description"],
        language=row["language"],
        subjects=json.loads(row["subjects"]) if row["subjects"] else [],
    )


def row_to_record(row: Any) -> BookRecord:
    """Convert a full database row to a BookRecord."""
    cover = row["cover_path"]
    return BookRecord(
        id=row["id"],
        owner_id=row["owner_id"],
        metadata=row_to_metadata(row),
        file_format=row["file_format"],
        file_path=Path(row["file_path"]),
        cover_path=Path(cover) if cover else None,
        file_size=row["file_size"],
        file_hash=row["file_hash"] or "",
        date_added=row["date_added"],
    )
