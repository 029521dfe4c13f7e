"""
Test the HTTP API
"""
import os
import time
from pathlib import Path

import pytest
from conftest import FakeFetcher, make_png
from fastapi.testclient import TestClient

from slides2pdf.api import create_app
from slides2pdf.api.server import purge_old_outputs, schedule_deletion
from slides2pdf.core.config import Settings
from slides2pdf.core.orchestrator import DocumentDownloader
from slides2pdf.core.prober import BruteForceProber

SCRIBD_URL = "https://www.scribd.com/document/31415926/slides"
CDN = "https://imgv2-1-f.scribdassets.com/img/document/31415926"


@pytest.fixture
def fetcher():
    fake = FakeFetcher()
    images = "".join(f"<img src='{CDN}/page_{i:03d}.jpg'>" for i in (1, 2))
    fake.add_html(SCRIBD_URL, f"<html><head><title>Team Slides</title></head><body>{images}</body></html>")
    for i in (1, 2):
        fake.add_image(f"{CDN}/page_{i:03d}.jpg", make_png(i))
    return fake


@pytest.fixture
def client(config, fetcher):
    settings = Settings(
        file_grace_seconds=3600,
        cleanup_interval_seconds=3600,
        output_retention_seconds=3600,
    )
    downloader = DocumentDownloader(
        config=config,
        fetcher=fetcher,
        prober=BruteForceProber(fetcher, max_pages=1),
    )
    app = create_app(settings=settings, config=config, downloader=downloader)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_terminal(client, download_id, timeout=10.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/api/download/{download_id}/status").json()
        if body["status"] in ("completed", "error") or time.monotonic() > deadline:
            return body
        time.sleep(0.02)


class TestDownloadEndpoints:
    """Test download start and status polling"""

    def test_download_completes(self, client, config):
        response = client.post("/api/download", json={"url": SCRIBD_URL, "mode": "/i"})
        assert response.status_code == 200
        started = response.json()
        assert started["status"] == "started"

        status = _wait_for_terminal(client, started["downloadId"])

        assert status["status"] == "completed"
        assert status["progress"] == 100
        assert status["filename"] == "Team_Slides.pdf"
        assert status["downloadUrl"] == "/api/files/Team_Slides.pdf"
        assert status["pages"] == 2
        assert (config.output_dir / "Team_Slides.pdf").exists()

    def test_download_failure_reported(self, client):
        url = "https://www.scribd.com/document/27182818/missing"
        download_id = client.post("/api/download", json={"url": url}).json()["downloadId"]

        status = _wait_for_terminal(client, download_id)

        assert status["status"] == "error"
        assert status["progress"] == 0
        assert "All strategies failed" in status["error"]
        assert status["filename"] is None

    def test_blank_url_rejected(self, client):
        response = client.post("/api/download", json={"url": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "URL is required"

    def test_unknown_download(self, client):
        assert client.get("/api/download/doesnotexist/status").status_code == 404


class TestFileEndpoints:
    """Test listing, serving and cleaning output files"""

    def test_list_and_serve(self, client, config):
        output_dir = config.output_dir
        (output_dir / "deck.pdf").write_bytes(b"%PDF-1.4 test")
        (output_dir / "pending.pdf.part").write_bytes(b"partial")

        listing = client.get("/api/downloads").json()
        assert [item["name"] for item in listing] == ["deck.pdf"]
        assert listing[0]["path"] == "/api/files/deck.pdf"
        assert listing[0]["size"] == len(b"%PDF-1.4 test")

        response = client.get("/api/files/deck.pdf")
        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 test"
        assert response.headers["content-type"] == "application/pdf"
        assert "deck.pdf" in response.headers["content-disposition"]

    def test_reserved_empty_file_hidden(self, client, config):
        (config.output_dir / "assembling.pdf").write_bytes(b"")

        assert client.get("/api/downloads").json() == []
        assert client.get("/api/files/assembling.pdf").status_code == 404

    def test_retrieving_result_evicts_job(self, client):
        download_id = client.post("/api/download", json={"url": SCRIBD_URL}).json()["downloadId"]
        status = _wait_for_terminal(client, download_id)
        assert status["status"] == "completed"

        response = client.get(status["downloadUrl"])

        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert client.get(f"/api/download/{download_id}/status").status_code == 404

    def test_missing_file(self, client):
        assert client.get("/api/files/nothing.pdf").status_code == 404

    def test_traversal_rejected(self, client, config, tmp_path):
        (tmp_path / "secret.pdf").write_bytes(b"secret")
        assert client.get("/api/files/..%2Fsecret.pdf").status_code == 404

    def test_cleanup_endpoint(self, client, config):
        old = config.output_dir / "old.pdf"
        old.write_bytes(b"old")
        stale = time.time() - 7200
        os.utime(old, (stale, stale))
        (config.output_dir / "new.pdf").write_bytes(b"new")

        response = client.delete("/api/downloads/cleanup")

        assert response.json() == {"deleted": 1}
        assert not old.exists()
        assert (config.output_dir / "new.pdf").exists()


class TestConfigEndpoints:
    def test_read_config(self, client, config):
        body = client.get("/api/config").json()
        assert body == {
            "output": str(config.output_dir),
            "filename": "title",
            "rendertime": "100",
        }

    def test_update_config_acknowledged(self, client):
        assert client.put("/api/config", json={"output": "elsewhere"}).json() == {"success": True}


class TestHousekeeping:
    def test_purge_old_outputs(self, tmp_path: Path):
        keep = tmp_path / "keep.pdf"
        drop = tmp_path / "drop.pdf"
        keep.write_bytes(b"1")
        drop.write_bytes(b"2")
        os.utime(drop, (1000, 1000))
        os.utime(keep, (5000, 5000))

        assert purge_old_outputs(tmp_path, max_age_seconds=3600, now=6000) == 1
        assert keep.exists() and not drop.exists()

    def test_purge_missing_dir(self, tmp_path: Path):
        assert purge_old_outputs(tmp_path / "absent", 10) == 0

    def test_schedule_deletion(self, tmp_path: Path):
        served = tmp_path / "served.pdf"
        served.write_bytes(b"pdf")
        timer = schedule_deletion(served, 0.01)
        timer.join(2)
        assert not served.exists()
