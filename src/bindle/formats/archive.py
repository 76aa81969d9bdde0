# ABOUTME: Uniform archive access over zip (EPUB, CBZ) and RAR (CBR) containers.
# ABOUTME: Zip readers are seekable; RAR readers are forward-only and must be reopened per lookup.

import zipfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import TracebackType
from typing import Protocol

import rarfile

from bindle.errors import ArchiveOpenError, ArchiveReadError


@dataclass(frozen=True)
class ArchiveEntry:
    """A file entry inside an archive."""

    name: str
    size: int

    @property
    def basename(self) -> str:
        return PurePosixPath(self.name).name

    @property
    def extension(self) -> str:
        """Lowercase extension including the leading dot, or empty string."""
        return PurePosixPath(self.name).suffix.lower()


class ArchiveReader(Protocol):
    """Capability set shared by both reader variants.

    ``seekable`` tells callers whether ``read`` may follow ``entries`` on the
    same handle. A forward-only reader spends its single pass on whichever of
    the two is called first.
    """

    path: Path
    seekable: bool

    def entries(self) -> list[ArchiveEntry]: ...

    def read(self, name: str) -> bytes: ...

    def close(self) -> None: ...

    def __enter__(self) -> "ArchiveReader": ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


ReaderOpener = Callable[[Path], ArchiveReader]


class ZipArchiveReader:
    """Seekable-index reader: enumerate once, then read any entry in any order."""

    seekable = True

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            self._zip = zipfile.ZipFile(self.path)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as exc:
            raise ArchiveOpenError(f"Failed to open zip archive: {path}: {exc}") from exc

    def __enter__(self) -> "ZipArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def entries(self) -> list[ArchiveEntry]:
        """List file entries (directories excluded) in physical archive order."""
        return [
            ArchiveEntry(name=info.filename, size=info.file_size)
            for info in self._zip.infolist()
            if not info.is_dir()
        ]

    def find(self, name: str) -> str | None:
        """Resolve an entry name, falling back to a case-insensitive match."""
        names = self._zip.namelist()
        if name in names:
            return name
        lowered = name.lower()
        for candidate in names:
            if candidate.lower() == lowered:
                return candidate
        return None

    def read(self, name: str) -> bytes:
        """Read the full contents of a named entry.

        Raises:
            ArchiveReadError: If the entry is missing or cannot be decompressed.
        """
        resolved = self.find(name)
        if resolved is None:
            raise ArchiveReadError(f"Entry not found in {self.path}: {name}")
        try:
            return self._zip.read(resolved)
        except (zipfile.BadZipFile, NotImplementedError, RuntimeError, OSError) as exc:
            raise ArchiveReadError(f"Failed to read {name} from {self.path}: {exc}") from exc

    def close(self) -> None:
        self._zip.close()


@dataclass(frozen=True)
class StreamEntry:
    """An entry yielded during a forward-only pass.

    ``read`` is only valid while the pass is positioned on this entry.
    """

    entry: ArchiveEntry
    read: Callable[[], bytes]


class RarStreamReader:
    """Forward-only reader over a RAR archive.

    Each handle supports exactly one pass in stream order. Listing the entries
    uses up that pass, so reading a name discovered during the listing means
    opening a fresh handle and streaming forward until the name comes up.
    """

    seekable = False

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._consumed = False
        try:
            self._rar = rarfile.RarFile(str(self.path))
        except (rarfile.Error, OSError) as exc:
            raise ArchiveOpenError(f"Failed to open RAR archive: {path}: {exc}") from exc

    def __enter__(self) -> "RarStreamReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def stream(self) -> Iterator[StreamEntry]:
        """Walk file entries in stream order. Usable once per handle.

        Raises:
            ArchiveReadError: If the pass was already used, or on a read failure.
        """
        if self._consumed:
            raise ArchiveReadError(
                f"RAR stream already consumed for {self.path}; reopen the archive"
            )
        self._consumed = True
        try:
            infos = self._rar.infolist()
        except (rarfile.Error, OSError) as exc:
            raise ArchiveReadError(f"Failed to read RAR headers: {self.path}: {exc}") from exc

        for info in infos:
            if info.is_dir():
                continue
            entry = ArchiveEntry(name=info.filename, size=info.file_size)
            yield StreamEntry(entry=entry, read=lambda info=info: self._read_info(info))

    def _read_info(self, info: rarfile.RarInfo) -> bytes:
        try:
            return self._rar.read(info)
        except (rarfile.Error, OSError) as exc:
            raise ArchiveReadError(
                f"Failed to read {info.filename} from {self.path}: {exc}"
            ) from exc

    def entries(self) -> list[ArchiveEntry]:
        """List file entries. Consumes this handle's only pass."""
        return [item.entry for item in self.stream()]

    def read(self, name: str) -> bytes:
        """Stream forward to ``name`` and read it. Consumes this handle's only pass.

        Raises:
            ArchiveReadError: If the name never comes up or reading fails.
        """
        for item in self.stream():
            if item.entry.name == name:
                return item.read()
        raise ArchiveReadError(f"Entry not found in {self.path}: {name}")

    def close(self) -> None:
        self._rar.close()
