"""Error taxonomy for catalog building, searching and extraction.

Per-archive errors (``ArchiveOpenError``, ``EntryEnumerationError``) are
recovered by the cache builder; every other error propagates to the caller.
"""

from __future__ import annotations

from typing import Any


class CatalogError(Exception):
    """Base exception for the catalog engine."""

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class DirectoryReadError(CatalogError):
    """Source directory is missing or cannot be listed."""


class ArchiveOpenError(CatalogError):
    """File is unreadable or not a valid archive."""


class EntryEnumerationError(CatalogError):
    """Iterating an opened archive's entries failed part-way."""


class EntryNotFoundError(CatalogError):
    """No entry in the archive matches the requested name."""


class ExtractWriteError(CatalogError):
    """Writing an extracted entry to disk failed or was refused."""


class StoreWriteError(CatalogError):
    """Inserting, clearing or publishing rows in the index store failed."""


class StoreQueryError(CatalogError):
    """Executing a query against the index store failed."""


class BuildInProgressError(CatalogError):
    """Another cache build is already running in this process."""


class InvalidPageError(ValueError):
    """Pagination arguments are out of range."""
