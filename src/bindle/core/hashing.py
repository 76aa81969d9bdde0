# ABOUTME: SHA-256 content digests used as the sole duplicate-identity key.
# ABOUTME: Streams files in chunks so large comic archives never load fully into memory.

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def compute_file_hash(path: Path) -> str:
    """Compute the SHA-256 digest of a file's full byte content.

    Filename, location, and embedded metadata play no part: byte-identical
    files always share a digest.

    Args:
        path: Path to the file to hash.

    Returns:
        Lowercase hex digest string (64 characters).

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of an in-memory byte string."""
    return hashlib.sha256(data).hexdigest()
