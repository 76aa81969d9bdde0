# ABOUTME: SQL DDL statements for the Bindle library database schema.
# ABOUTME: One books table keyed by string ids, indexed for hash lookups and owner scoping.

SCHEMA_V1 = """
-- Core book catalog table. owner_id '' is the unowned/global pool.
CREATE TABLE books (
    id            TEXT PRIMARY KEY,
    owner_id      TEXT NOT NULL DEFAULT '',
    title         TEXT NOT NULL,
    author        TEXT NOT NULL DEFAULT '',
    series        TEXT NOT NULL DEFAULT '',
    series_index  REAL NOT NULL DEFAULT 0,
    page_count    INTEGER NOT NULL DEFAULT 0,
    content_type  TEXT NOT NULL DEFAULT 'book',
    file_format   TEXT NOT NULL DEFAULT 'epub',
    isbn          TEXT NOT NULL DEFAULT '',
    publisher     TEXT NOT NULL DEFAULT '',
    publish_date  TEXT NOT NULL DEFAULT '',
    description   TEXT NOT NULL DEFAULT '',
    language      TEXT NOT NULL DEFAULT '',
    subjects      TEXT,
    file_path     TEXT NOT NULL,
    cover_path    TEXT,
    file_size     INTEGER NOT NULL DEFAULT 0,
    file_hash     TEXT,
    date_added    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);

CREATE INDEX idx_books_file_hash ON books(file_hash) WHERE file_hash IS NOT NULL;
CREATE INDEX idx_books_owner ON books(owner_id);
CREATE INDEX idx_books_owner_hash ON books(owner_id, file_hash);
CREATE INDEX idx_books_isbn ON books(isbn) WHERE isbn != '';

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

MIGRATIONS: list[tuple[int, str]] = []
