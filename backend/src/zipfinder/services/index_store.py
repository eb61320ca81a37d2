"""Persistent catalog of archive entries backed by SQLite.

All writes happen in one transaction per call, so a batch for one archive
is either fully visible or not at all.  Substring search uses SQLite's
``instr`` rather than ``LIKE``: matching is case-sensitive and ``%``/``_``
in the query are literal characters.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from sqlalchemy import Engine, delete, func, insert
from sqlalchemy import select as sa_select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from zipfinder.archive.handler import ArchiveEntry
from zipfinder.errors import StoreQueryError, StoreWriteError
from zipfinder.models.entry import IndexedEntry, StagedEntry

logger = logging.getLogger(__name__)

_COPY_COLUMNS = ("archive_name", "file_name", "file_size", "compressed_size", "zip_path")


class IndexStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def ensure_schema(self) -> None:
        """Create the catalog tables and their ``file_name`` indexes if missing."""
        try:
            SQLModel.metadata.create_all(
                self.engine,
                tables=[IndexedEntry.__table__, StagedEntry.__table__],  # type: ignore[list-item]
            )
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Cannot create catalog schema: {exc}") from exc

    def clear_all(self) -> int:
        """Remove every published row.  Returns the number of rows deleted."""
        return self._clear(IndexedEntry)

    def clear_staging(self) -> int:
        return self._clear(StagedEntry)

    def _clear(self, model: type[IndexedEntry] | type[StagedEntry]) -> int:
        try:
            with Session(self.engine) as session:
                result = session.exec(delete(model.__table__))  # type: ignore[call-overload]
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Cannot clear {model.__tablename__}: {exc}") from exc
        return result.rowcount

    def insert_batch(
        self,
        entries: Iterable[ArchiveEntry],
        archive_name: str,
        archive_path: str | Path,
        *,
        staging: bool = False,
    ) -> int:
        """Insert one archive's file entries atomically.

        Directory entries are skipped.  Returns the number of rows written.

        Raises:
            StoreWriteError: If any row fails to insert; no row of the batch
                is kept in that case.
        """
        model = StagedEntry if staging else IndexedEntry
        zip_path = str(archive_path)
        count = 0
        try:
            with Session(self.engine) as session:
                for entry in entries:
                    if entry.is_dir:
                        continue
                    session.add(
                        model(
                            archive_name=archive_name,
                            file_name=entry.filename,
                            file_size=entry.size,
                            compressed_size=entry.compressed_size,
                            zip_path=zip_path,
                        )
                    )
                    count += 1
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Cannot store entries of {archive_name}: {exc}") from exc
        return count

    def publish_staging(self) -> int:
        """Replace the published rows with the staged ones in a single transaction."""
        staged_table = StagedEntry.__table__  # type: ignore[attr-defined]
        staged = sa_select(*(staged_table.c[c] for c in _COPY_COLUMNS)).order_by(staged_table.c.id)
        try:
            with Session(self.engine) as session:
                session.exec(delete(IndexedEntry.__table__))  # type: ignore[call-overload]
                publish = insert(IndexedEntry.__table__).from_select(  # type: ignore[arg-type]
                    _COPY_COLUMNS, staged
                )
                session.exec(publish)  # type: ignore[call-overload]
                session.exec(delete(staged_table))  # type: ignore[call-overload]
                published = session.exec(select(func.count()).select_from(IndexedEntry)).one()
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Cannot publish staged entries: {exc}") from exc
        logger.info("Published %d catalog entries", published)
        return published

    def search(self, query: str, page: int, page_size: int) -> tuple[list[IndexedEntry], int]:
        """Return one page of entries whose name contains *query*, plus the total match count.

        ``page`` is 1-based.  An empty *query* matches every row.  Rows are
        ordered by id, i.e. insertion order.
        """
        count_stmt = select(func.count()).select_from(IndexedEntry)
        rows_stmt = select(IndexedEntry)
        if query:
            condition = func.instr(IndexedEntry.file_name, query) > 0
            count_stmt = count_stmt.where(condition)
            rows_stmt = rows_stmt.where(condition)
        rows_stmt = (
            rows_stmt.order_by(IndexedEntry.id)  # type: ignore[arg-type]
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        try:
            with Session(self.engine) as session:
                total = session.exec(count_stmt).one()
                rows = session.exec(rows_stmt).all()
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Search for '{query}' failed: {exc}") from exc
        return list(rows), total

    def get(self, entry_id: int) -> IndexedEntry | None:
        try:
            with Session(self.engine) as session:
                return session.get(IndexedEntry, entry_id)
        except SQLAlchemyError as exc:
            raise StoreQueryError(f"Lookup of entry {entry_id} failed: {exc}") from exc

    def count(self) -> int:
        return self.search("", 1, 1)[1]
