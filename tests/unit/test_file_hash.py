# ABOUTME: Unit tests for SHA-256 file hashing used in deduplication.
# ABOUTME: Validates determinism, content-only identity, hex format, and error handling.

import hashlib
import re
from pathlib import Path

import pytest

from bindle.core.hashing import compute_file_hash, hash_bytes


@pytest.fixture()
def sample_file(tmp_path: Path) -> Path:
    """Create a sample file with known content."""
    f = tmp_path / "sample.cbz"
    f.write_bytes(b"fake comic content for hashing")
    return f


class TestComputeFileHash:
    """Tests for compute_file_hash."""

    def test_returns_hex_string(self, sample_file: Path) -> None:
        """Result is a 64-character lowercase hex string."""
        assert re.fullmatch(r"[0-9a-f]{64}", compute_file_hash(sample_file))

    def test_matches_hashlib(self, sample_file: Path) -> None:
        expected = hashlib.sha256(sample_file.read_bytes()).hexdigest()
        assert compute_file_hash(sample_file) == expected

    def test_name_and_location_do_not_matter(self, sample_file: Path, tmp_path: Path) -> None:
        """Byte-identical copies under other names share a digest."""
        copy = tmp_path / "elsewhere" / "renamed.epub"
        copy.parent.mkdir()
        copy.write_bytes(sample_file.read_bytes())
        assert compute_file_hash(copy) == compute_file_hash(sample_file)

    def test_one_byte_difference(self, sample_file: Path, tmp_path: Path) -> None:
        data = bytearray(sample_file.read_bytes())
        data[-1] ^= 0x01
        other = tmp_path / "other.cbz"
        other.write_bytes(bytes(data))
        assert compute_file_hash(other) != compute_file_hash(sample_file)

    def test_large_file_spans_chunks(self, tmp_path: Path) -> None:
        data = bytes(range(256)) * 10_000
        big = tmp_path / "big.cbr"
        big.write_bytes(data)
        assert compute_file_hash(big) == hash_bytes(data)

    def test_nonexistent_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            compute_file_hash(tmp_path / "nonexistent.epub")

    def test_empty_file(self, tmp_path: Path) -> None:
        """Empty file hashes to the SHA-256 of empty bytes."""
        empty = tmp_path / "empty.epub"
        empty.write_bytes(b"")
        assert compute_file_hash(empty) == hashlib.sha256(b"").hexdigest()
