from typing import Self

from pydantic import BaseModel, model_validator


class BuildRequest(BaseModel):
    source_dir: str


class BuildWarningOut(BaseModel):
    archive: str
    error: str


class BuildResult(BaseModel):
    source_dir: str
    archives_found: int
    archives_indexed: int
    entries_indexed: int
    warnings: list[BuildWarningOut] = []


class EntryOut(BaseModel):
    id: int
    archive_name: str
    file_name: str
    file_size: int
    compressed_size: int
    zip_path: str


class SearchResult(BaseModel):
    query: str
    entries: list[EntryOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class ExtractRequest(BaseModel):
    entry_id: int | None = None
    archive_path: str | None = None
    entry_name: str | None = None
    destination: str | None = None
    overwrite: bool | None = None

    @model_validator(mode="after")
    def _check_target(self) -> Self:
        if self.entry_id is None and not (self.archive_path and self.entry_name):
            raise ValueError("Provide entry_id, or both archive_path and entry_name")
        return self


class ExtractResult(BaseModel):
    path: str


class RevealRequest(BaseModel):
    path: str


class CatalogStats(BaseModel):
    entries: int
    db_path: str
