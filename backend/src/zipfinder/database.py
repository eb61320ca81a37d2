import logging
from pathlib import Path

from sqlalchemy import Engine, event
from sqlmodel import SQLModel, create_engine, text

import zipfinder.models  # noqa: F401 - register catalog tables with SQLModel
from zipfinder.config import settings

logger = logging.getLogger(__name__)


def make_engine(db_path: Path) -> Engine:
    """Create a SQLite engine for the catalog file at *db_path*."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    eng = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    @event.listens_for(eng, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return eng


def create_db_and_tables(eng: Engine) -> None:
    SQLModel.metadata.create_all(eng)
    with eng.connect() as conn:
        conn.execute(text("PRAGMA journal_mode=WAL"))
        conn.commit()
    logger.info("Catalog database ready at %s", eng.url.database)


engine = make_engine(settings.db_path)
