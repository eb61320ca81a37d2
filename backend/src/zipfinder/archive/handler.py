"""Abstract archive handler with implementations for ZIP and 7z.

Provides a uniform, metadata-only view of an archive's entries plus
single-entry extraction, regardless of format.
"""

from __future__ import annotations

import lzma
import shutil
import tempfile
import zipfile
import zlib
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import py7zr
from py7zr.exceptions import ArchiveError as SevenZipError
from py7zr.exceptions import PasswordRequired

from zipfinder.errors import ArchiveOpenError, EntryEnumerationError, EntryNotFoundError

SUPPORTED_EXTENSIONS = {".zip", ".7z"}

# zipfile raises RuntimeError for encrypted members and NotImplementedError for
# unknown compression methods.
_ZIP_READ_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError)

_SEVEN_ZIP_ERRORS = (SevenZipError, PasswordRequired, lzma.LZMAError, EOFError)
_SEVEN_ZIP_OPEN_ERRORS = (*_SEVEN_ZIP_ERRORS, OSError)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    filename: str
    is_dir: bool
    size: int = 0
    compressed_size: int = 0


class ArchiveHandler(ABC):
    """Base class for archive format handlers."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @abstractmethod
    def iter_entries(self) -> Iterator[ArchiveEntry]:
        """Yield entries lazily in the archive's own order."""

    @abstractmethod
    def extract_entry(self, entry: ArchiveEntry, target: Path) -> None:
        """Decompress *entry* and write it to *target*."""

    @abstractmethod
    def close(self) -> None:
        """Release resources."""

    def get_entry(self, name: str) -> ArchiveEntry:
        for entry in self.iter_entries():
            if entry.filename == name:
                return entry
        raise EntryNotFoundError(f"'{name}' not found in {self.path.name}")

    def __enter__(self) -> ArchiveHandler:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class ZipHandler(ArchiveHandler):
    """Handler for .zip archives using stdlib zipfile."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        try:
            self._zf = zipfile.ZipFile(self.path, "r")
        except (zipfile.BadZipFile, OSError, EOFError, ValueError) as exc:
            raise ArchiveOpenError(f"Cannot open {self.path.name}: {exc}") from exc

    def iter_entries(self) -> Iterator[ArchiveEntry]:
        try:
            for info in self._zf.infolist():
                yield ArchiveEntry(
                    filename=info.filename,
                    is_dir=info.is_dir(),
                    size=info.file_size,
                    compressed_size=info.compress_size,
                )
        except (zipfile.BadZipFile, OSError, ValueError) as exc:
            raise EntryEnumerationError(f"Cannot enumerate {self.path.name}: {exc}") from exc

    def get_entry(self, name: str) -> ArchiveEntry:
        try:
            info = self._zf.getinfo(name)
        except KeyError as exc:
            raise EntryNotFoundError(f"'{name}' not found in {self.path.name}") from exc
        return ArchiveEntry(
            filename=info.filename,
            is_dir=info.is_dir(),
            size=info.file_size,
            compressed_size=info.compress_size,
        )

    def extract_entry(self, entry: ArchiveEntry, target: Path) -> None:
        try:
            with self._zf.open(entry.filename) as src, target.open("wb") as dst:
                shutil.copyfileobj(src, dst)
        except _ZIP_READ_ERRORS as exc:
            raise ArchiveOpenError(
                f"Cannot decompress '{entry.filename}' from {self.path.name}: {exc}"
            ) from exc

    def close(self) -> None:
        self._zf.close()


class SevenZipHandler(ArchiveHandler):
    """Handler for .7z archives using py7zr.

    py7zr >= 1.0 removed the ``read()`` method.  All extraction now goes
    through ``extract(path, targets)`` which writes to disk, so entries are
    extracted into a temporary directory and copied to their target.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        try:
            self._archive = py7zr.SevenZipFile(self.path, mode="r")
        except _SEVEN_ZIP_OPEN_ERRORS as exc:
            raise ArchiveOpenError(f"Cannot open {self.path.name}: {exc}") from exc

    def iter_entries(self) -> Iterator[ArchiveEntry]:
        try:
            infos = self._archive.list()
        except _SEVEN_ZIP_OPEN_ERRORS as exc:
            raise EntryEnumerationError(f"Cannot enumerate {self.path.name}: {exc}") from exc
        for info in infos:
            yield ArchiveEntry(
                filename=info.filename,
                is_dir=info.is_directory,
                size=info.uncompressed or 0,
                compressed_size=info.compressed or 0,
            )

    def extract_entry(self, entry: ArchiveEntry, target: Path) -> None:
        self._archive.reset()
        with tempfile.TemporaryDirectory() as tmpdir:
            tmpdir_path = Path(tmpdir).resolve()
            try:
                self._archive.extract(path=tmpdir, targets=[entry.filename])
            except _SEVEN_ZIP_ERRORS as exc:
                raise ArchiveOpenError(
                    f"Cannot decompress '{entry.filename}' from {self.path.name}: {exc}"
                ) from exc
            extracted = (tmpdir_path / entry.filename).resolve()
            if not extracted.is_file() or tmpdir_path not in extracted.parents:
                raise EntryNotFoundError(f"'{entry.filename}' not found in {self.path.name}")
            shutil.copyfile(extracted, target)

    def close(self) -> None:
        self._archive.close()


def is_supported(path: str | Path, extensions: set[str] | None = None) -> bool:
    """Return True when *path*'s suffix (case-insensitive) is a known archive type."""
    allowed = extensions if extensions is not None else SUPPORTED_EXTENSIONS
    return Path(path).suffix.lower() in allowed


def open_archive(path: str | Path) -> ArchiveHandler:
    """Open an archive file and return the appropriate handler.

    Raises:
        ArchiveOpenError: If the extension is unsupported, the file cannot
            be read, or it is not a well-formed archive.
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext == ".zip":
        return ZipHandler(path)
    if ext == ".7z":
        return SevenZipHandler(path)

    raise ArchiveOpenError(f"Unsupported archive format: {ext or path.name}")
