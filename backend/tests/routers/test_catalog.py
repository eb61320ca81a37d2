import json
import zipfile
from unittest.mock import patch

import pytest

from zipfinder.config import settings


def _sse_events(text: str) -> list[dict]:
    return [
        json.loads(line[len("data: ") :]) for line in text.splitlines() if line.startswith("data: ")
    ]


class TestHealth:
    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestBuild:
    def test_build_reports_counts_and_warnings(self, client, archive_dir):
        r = client.post("/api/v1/catalog/build", json={"source_dir": str(archive_dir)})
        assert r.status_code == 200
        data = r.json()
        assert data["archives_found"] == 2
        assert data["archives_indexed"] == 1
        assert data["entries_indexed"] == 2
        assert [w["archive"] for w in data["warnings"]] == ["corrupt.zip"]
        assert isinstance(data["warnings"][0]["error"], str)

    def test_missing_directory_returns_404(self, client, tmp_path):
        r = client.post("/api/v1/catalog/build", json={"source_dir": str(tmp_path / "nope")})
        assert r.status_code == 404
        assert "Cannot read directory" in r.json()["detail"]

    def test_build_in_progress_returns_409(self, client, archive_dir):
        from zipfinder.services import cache_builder

        cache_builder._build_lock.acquire()
        try:
            r = client.post("/api/v1/catalog/build", json={"source_dir": str(archive_dir)})
        finally:
            cache_builder._build_lock.release()
        assert r.status_code == 409

    def test_requires_source_dir(self, client):
        r = client.post("/api/v1/catalog/build", json={})
        assert r.status_code == 422


class TestBuildStream:
    def test_streams_progress_then_result(self, client, archive_dir):
        r = client.post("/api/v1/catalog/build/stream", json={"source_dir": str(archive_dir)})
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/event-stream")

        events = _sse_events(r.text)
        phases = [e["phase"] for e in events]
        assert phases[0] == "build"
        assert "done" in phases
        assert phases[-1] == "result"
        assert events[-1]["result"]["entries_indexed"] == 2

    def test_streams_error(self, client, tmp_path):
        r = client.post(
            "/api/v1/catalog/build/stream", json={"source_dir": str(tmp_path / "missing")}
        )
        events = _sse_events(r.text)
        assert events[-1]["phase"] == "error"
        assert "Cannot read directory" in events[-1]["error"]


class TestSearch:
    @pytest.fixture(autouse=True)
    def _built(self, client, archive_dir):
        r = client.post("/api/v1/catalog/build", json={"source_dir": str(archive_dir)})
        assert r.status_code == 200

    def test_search_scenario(self, client, archive_dir):
        r = client.get("/api/v1/catalog/search", params={"q": "y"})
        assert r.status_code == 200
        data = r.json()
        assert data["total"] == 1
        assert data["total_pages"] == 1
        entry = data["entries"][0]
        assert entry["file_name"] == "dir/y.txt"
        assert entry["archive_name"] == "a.zip"
        assert entry["zip_path"] == str(archive_dir / "a.zip")
        assert entry["file_size"] == len(b"y content")

    def test_empty_query_lists_all(self, client):
        data = client.get("/api/v1/catalog/search").json()
        assert data["total"] == 2
        assert data["page_size"] == settings.default_page_size

    def test_pagination(self, client):
        first = client.get("/api/v1/catalog/search", params={"page": 1, "page_size": 1}).json()
        second = client.get("/api/v1/catalog/search", params={"page": 2, "page_size": 1}).json()
        assert first["total"] == second["total"] == 2
        assert first["total_pages"] == 2
        assert first["entries"][0]["id"] != second["entries"][0]["id"]

    @pytest.mark.parametrize(
        "params",
        [
            {"page": 0},
            {"page_size": 0},
            {"page_size": 100_000},
            {"page": 10**19, "page_size": 10},
        ],
    )
    def test_invalid_pagination_422(self, client, params):
        r = client.get("/api/v1/catalog/search", params=params)
        assert r.status_code == 422

    def test_get_entry(self, client):
        entry = client.get("/api/v1/catalog/search", params={"q": "x.txt"}).json()["entries"][0]

        r = client.get(f"/api/v1/catalog/entries/{entry['id']}")
        assert r.status_code == 200
        assert r.json() == entry

    def test_get_missing_entry_404(self, client):
        assert client.get("/api/v1/catalog/entries/99999").status_code == 404

    def test_stats(self, client):
        r = client.get("/api/v1/catalog/stats")
        assert r.status_code == 200
        assert r.json()["entries"] == 2

    def test_clear(self, client):
        r = client.delete("/api/v1/catalog/")
        assert r.status_code == 200
        assert client.get("/api/v1/catalog/search").json()["total"] == 0


class TestExtract:
    @pytest.fixture(autouse=True)
    def _built(self, client, archive_dir):
        client.post("/api/v1/catalog/build", json={"source_dir": str(archive_dir)})

    def _entry_id(self, client, q: str) -> int:
        return client.get("/api/v1/catalog/search", params={"q": q}).json()["entries"][0]["id"]

    def test_extract_by_id(self, client, tmp_path):
        dest = tmp_path / "downloads"
        r = client.post(
            "/api/v1/catalog/extract",
            json={"entry_id": self._entry_id(client, "y.txt"), "destination": str(dest)},
        )
        assert r.status_code == 200
        path = r.json()["path"]
        assert path == str(dest / "dir" / "y.txt")
        assert (dest / "dir" / "y.txt").read_bytes() == b"y content"

    def test_extract_by_archive_and_name(self, client, tmp_path, archive_dir):
        dest = tmp_path / "downloads"
        r = client.post(
            "/api/v1/catalog/extract",
            json={
                "archive_path": str(archive_dir / "a.zip"),
                "entry_name": "x.txt",
                "destination": str(dest),
            },
        )
        assert r.status_code == 200
        assert (dest / "x.txt").read_bytes() == b"x content"

    def test_defaults_to_download_dir(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "download_dir", tmp_path / "dl")
        r = client.post(
            "/api/v1/catalog/extract", json={"entry_id": self._entry_id(client, "x.txt")}
        )
        assert r.status_code == 200
        assert (tmp_path / "dl" / "x.txt").exists()

    def test_no_overwrite_conflict_409(self, client, tmp_path):
        dest = tmp_path / "downloads"
        dest.mkdir()
        (dest / "x.txt").write_bytes(b"mine")
        r = client.post(
            "/api/v1/catalog/extract",
            json={
                "entry_id": self._entry_id(client, "x.txt"),
                "destination": str(dest),
                "overwrite": False,
            },
        )
        assert r.status_code == 409
        assert (dest / "x.txt").read_bytes() == b"mine"

    def test_unknown_entry_404(self, client, tmp_path):
        r = client.post(
            "/api/v1/catalog/extract", json={"entry_id": 424242, "destination": str(tmp_path)}
        )
        assert r.status_code == 404

    def test_missing_name_in_archive_404(self, client, tmp_path, archive_dir):
        r = client.post(
            "/api/v1/catalog/extract",
            json={
                "archive_path": str(archive_dir / "a.zip"),
                "entry_name": "nope.txt",
                "destination": str(tmp_path),
            },
        )
        assert r.status_code == 404

    def test_corrupt_archive_422(self, client, tmp_path, archive_dir):
        r = client.post(
            "/api/v1/catalog/extract",
            json={
                "archive_path": str(archive_dir / "corrupt.zip"),
                "entry_name": "x.txt",
                "destination": str(tmp_path),
            },
        )
        assert r.status_code == 422
        assert isinstance(r.json()["detail"], str)

    def test_encrypted_member_422(self, client, tmp_path):
        archive = tmp_path / "locked.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("s.txt", b"secret")
            zf.getinfo("s.txt").flag_bits |= 0x1

        r = client.post(
            "/api/v1/catalog/extract",
            json={
                "archive_path": str(archive),
                "entry_name": "s.txt",
                "destination": str(tmp_path),
            },
        )
        assert r.status_code == 422
        assert "encrypted" in r.json()["detail"]

    def test_requires_target(self, client):
        r = client.post("/api/v1/catalog/extract", json={"destination": "/tmp"})
        assert r.status_code == 422


class TestReveal:
    def test_reveal_existing_path(self, client, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"")
        with patch("zipfinder.routers.catalog.reveal_in_file_manager") as reveal:
            r = client.post("/api/v1/catalog/reveal", json={"path": str(f)})
        assert r.status_code == 204
        reveal.assert_called_once_with(str(f))

    def test_reveal_missing_path_404(self, client, tmp_path):
        r = client.post("/api/v1/catalog/reveal", json={"path": str(tmp_path / "missing")})
        assert r.status_code == 404
