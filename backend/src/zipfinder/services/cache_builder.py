"""Full rebuild of the entry catalog from a directory of archives.

Lists the archives directly inside a source directory, reads each one's
entry metadata, and stages the rows archive by archive.  Once every
archive has been attempted the staged rows replace the published index in
one transaction, so searches never see a half-built catalog and a failed
build leaves the previous catalog in place.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from zipfinder.archive.handler import (
    SUPPORTED_EXTENSIONS,
    ArchiveEntry,
    is_supported,
    open_archive,
)
from zipfinder.errors import (
    ArchiveOpenError,
    BuildInProgressError,
    DirectoryReadError,
    EntryEnumerationError,
    StoreWriteError,
)
from zipfinder.services.index_store import IndexStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str, int], None]

_build_lock = threading.Lock()


def _noop_progress(_phase: str, _msg: str, _pct: int) -> None:
    pass


@dataclass(frozen=True, slots=True)
class BuildWarning:
    archive: str
    error: str


@dataclass
class BuildReport:
    source_dir: Path
    archives_found: int = 0
    archives_indexed: int = 0
    entries_indexed: int = 0
    warnings: list[BuildWarning] = field(default_factory=list)


def discover_archives(source_dir: Path, extensions: Iterable[str]) -> list[Path]:
    """Return regular files directly inside *source_dir* with an archive suffix.

    Suffixes are compared case-insensitively.  Results are sorted by name.

    Raises:
        DirectoryReadError: If *source_dir* is missing or cannot be listed.
    """
    allowed = {ext.lower() for ext in extensions}
    try:
        children = sorted(source_dir.iterdir())
    except OSError as exc:
        raise DirectoryReadError(f"Cannot read directory {source_dir}: {exc}") from exc
    return [p for p in children if p.is_file() and is_supported(p, allowed)]


def read_archive_entries(path: Path) -> list[ArchiveEntry]:
    """Open *path* and collect its non-directory entries.

    Raises:
        ArchiveOpenError: If the archive cannot be opened.
        EntryEnumerationError: If listing its entries fails part-way.
    """
    with open_archive(path) as archive:
        return [entry for entry in archive.iter_entries() if not entry.is_dir]


class CacheBuilder:
    def __init__(self, store: IndexStore, extensions: Iterable[str] | None = None) -> None:
        self.store = store
        self.extensions = {ext.lower() for ext in (extensions or SUPPORTED_EXTENSIONS)}

    def build(
        self,
        source_dir: str | Path,
        on_progress: ProgressCallback = _noop_progress,
    ) -> BuildReport:
        """Rebuild the catalog from the archives in *source_dir*.

        Archives that fail to open or enumerate are skipped and reported in
        ``BuildReport.warnings``.  Store failures abort the build and leave
        the previously published catalog untouched.

        Raises:
            BuildInProgressError: If another build is running in this process.
            DirectoryReadError: If *source_dir* cannot be listed.
            StoreWriteError: If writing to the catalog fails.
        """
        if not _build_lock.acquire(blocking=False):
            raise BuildInProgressError("A cache build is already running")
        try:
            return self._build(Path(source_dir).absolute(), on_progress)
        finally:
            _build_lock.release()

    def _build(self, source_dir: Path, on_progress: ProgressCallback) -> BuildReport:
        logger.info("Starting cache build from %s", source_dir)
        self.store.ensure_schema()
        self.store.clear_staging()

        on_progress("build", "Discovering archives...", 0)
        archives = discover_archives(source_dir, self.extensions)
        report = BuildReport(source_dir=source_dir, archives_found=len(archives))
        total = len(archives)

        for i, path in enumerate(archives):
            pct = int(((i + 1) / total) * 100)
            try:
                entries = read_archive_entries(path)
            except (ArchiveOpenError, EntryEnumerationError) as exc:
                logger.warning("Skipping %s: %s", path.name, exc)
                report.warnings.append(BuildWarning(archive=path.name, error=str(exc)))
                on_progress("build", f"Skipped: {path.name}", pct)
                continue

            try:
                count = self.store.insert_batch(entries, path.name, path, staging=True)
            except StoreWriteError:
                logger.error("Cache build aborted while storing %s", path.name)
                raise
            report.archives_indexed += 1
            report.entries_indexed += count
            logger.info("Finished processing archive: %s (%d entries)", path.name, count)
            on_progress("build", f"Indexed: {path.name} ({count} entries)", pct)

        self.store.publish_staging()
        on_progress(
            "done",
            f"Indexed {report.entries_indexed} entries from {report.archives_indexed} archives",
            100,
        )
        logger.info(
            "Cache build finished: %d entries from %d/%d archives, %d skipped",
            report.entries_indexed,
            report.archives_indexed,
            report.archives_found,
            len(report.warnings),
        )
        return report
