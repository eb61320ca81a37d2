"""Paginated substring search over the entry catalog."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from zipfinder.errors import InvalidPageError
from zipfinder.models.entry import IndexedEntry
from zipfinder.services.index_store import IndexStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000

# SQLite binds OFFSET as a signed 64-bit integer.
_MAX_OFFSET = 2**63 - 1


@dataclass
class SearchPage:
    entries: list[IndexedEntry]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)


def search_entries(
    store: IndexStore,
    query: str = "",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> SearchPage:
    """Return page *page* of entries whose name contains *query* (case-sensitive).

    Out-of-range pagination is rejected rather than clamped.  A page past
    the last one is empty but still carries the full match count.

    Raises:
        InvalidPageError: If ``page < 1``, ``page_size`` is outside
            ``1..MAX_PAGE_SIZE``, or the page offset cannot be represented
            by SQLite.
        StoreQueryError: If the query fails.
    """
    if page < 1:
        raise InvalidPageError(f"page must be >= 1, got {page}")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise InvalidPageError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")
    if (page - 1) * page_size > _MAX_OFFSET:
        raise InvalidPageError(f"page {page} is out of range for page_size {page_size}")

    logger.info("Searching for %r (page %d, %d per page)", query, page, page_size)
    entries, total = store.search(query, page, page_size)
    logger.info("Found %d results.", total)
    return SearchPage(entries=entries, total=total, page=page, page_size=page_size)
