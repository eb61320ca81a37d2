from zipfinder.archive.handler import (
    SUPPORTED_EXTENSIONS,
    ArchiveEntry,
    ArchiveHandler,
    SevenZipHandler,
    ZipHandler,
    is_supported,
    open_archive,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ArchiveEntry",
    "ArchiveHandler",
    "SevenZipHandler",
    "ZipHandler",
    "is_supported",
    "open_archive",
]
