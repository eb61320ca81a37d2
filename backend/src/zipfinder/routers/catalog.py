"""Endpoints for building, searching and extracting from the archive catalog."""

import asyncio
import json
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from zipfinder.config import settings
from zipfinder.errors import (
    ArchiveOpenError,
    BuildInProgressError,
    CatalogError,
    DirectoryReadError,
    EntryNotFoundError,
    ExtractWriteError,
    InvalidPageError,
)
from zipfinder.models.entry import IndexedEntry
from zipfinder.routers.deps import get_store
from zipfinder.schemas.catalog import (
    BuildRequest,
    BuildResult,
    BuildWarningOut,
    CatalogStats,
    EntryOut,
    ExtractRequest,
    ExtractResult,
    RevealRequest,
    SearchResult,
)
from zipfinder.services.cache_builder import BuildReport, CacheBuilder
from zipfinder.services.extract_service import extract_entry, extract_indexed_entry
from zipfinder.services.index_store import IndexStore
from zipfinder.services.search_service import MAX_PAGE_SIZE, search_entries
from zipfinder.services.shell import reveal_in_file_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["catalog"])

_ERROR_STATUS: list[tuple[type[CatalogError], int]] = [
    (DirectoryReadError, 404),
    (EntryNotFoundError, 404),
    (BuildInProgressError, 409),
    (ExtractWriteError, 409),
    (ArchiveOpenError, 422),
]


def _http_error(exc: CatalogError) -> HTTPException:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status, str(exc))
    logger.error("Catalog operation failed: %s", exc)
    return HTTPException(500, str(exc))


def _report_to_out(report: BuildReport) -> BuildResult:
    return BuildResult(
        source_dir=str(report.source_dir),
        archives_found=report.archives_found,
        archives_indexed=report.archives_indexed,
        entries_indexed=report.entries_indexed,
        warnings=[BuildWarningOut(archive=w.archive, error=w.error) for w in report.warnings],
    )


def _entry_to_out(entry: IndexedEntry) -> EntryOut:
    return EntryOut(
        id=entry.id,  # type: ignore[arg-type]
        archive_name=entry.archive_name,
        file_name=entry.file_name,
        file_size=entry.file_size,
        compressed_size=entry.compressed_size,
        zip_path=entry.zip_path,
    )


def _builder(store: IndexStore) -> CacheBuilder:
    return CacheBuilder(store, extensions=settings.archive_extensions)


@router.post("/build", response_model=BuildResult)
def build(
    body: BuildRequest,
    store: IndexStore = Depends(get_store),
) -> BuildResult:
    """Rebuild the catalog from every archive directly inside ``source_dir``."""
    try:
        report = _builder(store).build(body.source_dir)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return _report_to_out(report)


@router.post("/build/stream")
async def build_stream(
    body: BuildRequest,
    store: IndexStore = Depends(get_store),
) -> StreamingResponse:
    """Rebuild the catalog and stream progress as SSE events."""
    progress_queue: asyncio.Queue[dict | None] = asyncio.Queue()
    loop = asyncio.get_running_loop()

    def progress_cb(phase: str, message: str, percent: int) -> None:
        loop.call_soon_threadsafe(
            progress_queue.put_nowait,
            {"phase": phase, "message": message, "percent": percent},
        )

    async def run_build() -> None:
        try:
            report = await asyncio.to_thread(_builder(store).build, body.source_dir, progress_cb)
            await progress_queue.put(
                {"phase": "result", "result": _report_to_out(report).model_dump()}
            )
        except CatalogError as exc:
            await progress_queue.put({"phase": "error", "error": str(exc)})
        except Exception as e:
            logger.exception("SSE cache build failed for '%s'", body.source_dir)
            await progress_queue.put({"phase": "error", "error": str(e)[:500]})
        finally:
            await progress_queue.put(None)

    task = asyncio.create_task(run_build())

    async def event_stream():
        try:
            while True:
                item = await progress_queue.get()
                if item is None:
                    break
                yield f"data: {json.dumps(item)}\n\n"
        finally:
            task.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/search", response_model=SearchResult)
def search(
    q: str = "",
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=MAX_PAGE_SIZE),
    store: IndexStore = Depends(get_store),
) -> SearchResult:
    size = page_size or settings.default_page_size
    try:
        result = search_entries(store, q, page=page, page_size=size)
    except InvalidPageError as exc:
        raise HTTPException(422, str(exc)) from exc
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return SearchResult(
        query=q,
        entries=[_entry_to_out(e) for e in result.entries],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/entries/{entry_id}", response_model=EntryOut)
def get_entry(
    entry_id: int,
    store: IndexStore = Depends(get_store),
) -> EntryOut:
    try:
        entry = store.get(entry_id)
    except CatalogError as exc:
        raise _http_error(exc) from exc
    if entry is None:
        raise HTTPException(404, f"Entry {entry_id} not found")
    return _entry_to_out(entry)


@router.post("/extract", response_model=ExtractResult)
def extract(
    body: ExtractRequest,
    store: IndexStore = Depends(get_store),
) -> ExtractResult:
    """Extract one entry to ``destination`` (the download folder by default)."""
    destination = Path(body.destination) if body.destination else settings.download_dir
    overwrite = settings.extract_overwrite if body.overwrite is None else body.overwrite
    try:
        if body.entry_id is not None:
            path = extract_indexed_entry(store, body.entry_id, destination, overwrite=overwrite)
        else:
            path = extract_entry(
                body.archive_path,  # type: ignore[arg-type]
                body.entry_name,  # type: ignore[arg-type]
                destination,
                overwrite=overwrite,
            )
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return ExtractResult(path=str(path))


@router.post("/reveal", status_code=204)
def reveal(body: RevealRequest) -> None:
    """Show a path (usually a freshly extracted file) in the OS file manager."""
    try:
        reveal_in_file_manager(body.path)
    except FileNotFoundError as exc:
        raise HTTPException(404, str(exc)) from exc
    except OSError as exc:
        raise HTTPException(500, f"Could not open file manager: {exc}") from exc


@router.get("/stats", response_model=CatalogStats)
def stats(store: IndexStore = Depends(get_store)) -> CatalogStats:
    try:
        store.ensure_schema()
        count = store.count()
    except CatalogError as exc:
        raise _http_error(exc) from exc
    return CatalogStats(entries=count, db_path=str(store.engine.url.database or ""))


@router.delete("/", response_model=CatalogStats)
def clear(store: IndexStore = Depends(get_store)) -> CatalogStats:
    """Remove every entry from the catalog."""
    try:
        store.ensure_schema()
        removed = store.clear_all()
    except CatalogError as exc:
        raise _http_error(exc) from exc
    logger.info("Cleared %d catalog entries", removed)
    return CatalogStats(entries=0, db_path=str(store.engine.url.database or ""))
