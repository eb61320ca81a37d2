"""SQLModel tables for the archive entry catalog.

``files`` is the published index read by searches.  ``files_staging`` has
the same columns and receives rows while a build is running; a successful
build publishes it into ``files`` in one transaction.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class IndexedEntryBase(SQLModel):
    archive_name: str
    file_name: str = Field(index=True)
    file_size: int = 0
    compressed_size: int = 0
    zip_path: str


class IndexedEntry(IndexedEntryBase, table=True):
    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)


class StagedEntry(IndexedEntryBase, table=True):
    __tablename__ = "files_staging"

    id: int | None = Field(default=None, primary_key=True)
