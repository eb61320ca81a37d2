"""Extraction of a single catalog entry from its source archive."""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

from zipfinder.archive.handler import ArchiveEntry, ArchiveHandler, open_archive
from zipfinder.errors import EntryNotFoundError, ExtractWriteError
from zipfinder.services.index_store import IndexStore

logger = logging.getLogger(__name__)


def resolve_target(destination: Path, entry_name: str) -> Path:
    """Join *entry_name* onto *destination*, keeping its sub-directories.

    Raises:
        ExtractWriteError: If the entry name would land outside *destination*.
    """
    normalised = entry_name.replace("\\", "/")
    target = destination / normalised
    if PurePosixPath(normalised).is_absolute() or not target.resolve().is_relative_to(
        destination.resolve()
    ):
        raise ExtractWriteError(f"Refusing to extract outside destination: {entry_name}")
    return target


def _extract_atomically(archive: ArchiveHandler, entry: ArchiveEntry, target: Path) -> None:
    """Write *entry* to a temporary sibling of *target*, then move it into place.

    An existing file at *target* is left untouched if decompression fails.
    """
    partial = target.with_name(f".{target.name}.part")
    partial.unlink(missing_ok=True)
    try:
        archive.extract_entry(entry, partial)
        os.replace(partial, target)
    finally:
        partial.unlink(missing_ok=True)


def extract_entry(
    archive_path: str | Path,
    entry_name: str,
    destination: str | Path,
    *,
    overwrite: bool = True,
) -> Path:
    """Decompress one entry of *archive_path* into *destination*.

    Missing intermediate directories are created.  An existing file at the
    target is replaced when *overwrite* is true and refused otherwise.

    Returns the path of the written file.

    Raises:
        ArchiveOpenError: If the archive cannot be opened or decompressed.
        EntryNotFoundError: If no file entry has exactly that name.
        ExtractWriteError: If the target is unsafe, exists and *overwrite*
            is false, or cannot be written.
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    with open_archive(archive_path) as archive:
        entry = archive.get_entry(entry_name)
        if entry.is_dir:
            raise EntryNotFoundError(f"'{entry_name}' is a directory in {archive_path.name}")

        target = resolve_target(destination, entry.filename)
        if target.exists() and not overwrite:
            raise ExtractWriteError(f"File already exists: {target}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            _extract_atomically(archive, entry, target)
        except OSError as exc:
            raise ExtractWriteError(f"Cannot write {target}: {exc}") from exc

    logger.info("Extracted %s from %s to %s", entry_name, archive_path.name, target)
    return target


def extract_indexed_entry(
    store: IndexStore,
    entry_id: int,
    destination: str | Path,
    *,
    overwrite: bool = True,
) -> Path:
    """Extract the catalog row *entry_id* from the archive it was indexed from."""
    row = store.get(entry_id)
    if row is None:
        raise EntryNotFoundError(f"No indexed entry with id {entry_id}")
    return extract_entry(row.zip_path, row.file_name, destination, overwrite=overwrite)
