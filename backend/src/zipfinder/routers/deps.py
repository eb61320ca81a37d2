"""Shared FastAPI dependencies used across routers."""

from zipfinder.database import engine
from zipfinder.services.index_store import IndexStore


def get_store() -> IndexStore:
    """Return the catalog store over the application database."""
    return IndexStore(engine)
