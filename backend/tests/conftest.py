import os
import tempfile
import zipfile
from collections.abc import Callable
from pathlib import Path

os.environ.setdefault("ZF_DATA_DIR", tempfile.mkdtemp(prefix="zipfinder-tests-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

import zipfinder.models  # noqa: E402, F401 - register all tables
from zipfinder.main import app  # noqa: E402
from zipfinder.routers.deps import get_store  # noqa: E402
from zipfinder.services.index_store import IndexStore  # noqa: E402


def write_zip(path: Path, files: dict[str, bytes], dirs: list[str] | None = None) -> Path:
    """Create a zip archive at *path* containing the given files and directory markers."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for d in dirs or []:
            zf.writestr(d.rstrip("/") + "/", b"")
        for name, content in files.items():
            zf.writestr(name, content)
    return path


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def store(engine) -> IndexStore:
    return IndexStore(engine)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()


@pytest.fixture
def make_zip(tmp_path) -> Callable[..., Path]:
    def _make(
        name: str,
        files: dict[str, bytes],
        dirs: list[str] | None = None,
        folder: str = "archives",
    ) -> Path:
        return write_zip(tmp_path / folder / name, files, dirs)

    return _make


@pytest.fixture
def archive_dir(tmp_path) -> Path:
    """Source folder holding ``a.zip`` (x.txt, dir/y.txt) and a non-archive ``corrupt.zip``."""
    folder = tmp_path / "archives"
    write_zip(folder / "a.zip", {"x.txt": b"x content", "dir/y.txt": b"y content"}, dirs=["dir"])
    (folder / "corrupt.zip").write_bytes(b"this is not a zip file")
    return folder
