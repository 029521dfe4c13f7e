"""
FastAPI application exposing document downloads as background jobs
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import threading
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from ..core.config import ConfigProvider, Settings
from ..core.jobs import JobRunner, JobStore
from ..core.models import DocumentJob, JobStatus
from ..core.orchestrator import DocumentDownloader
from .schemas import ConfigView, DownloadedFile, DownloadRequest, DownloadStarted, DownloadStatus

logger = logging.getLogger("slides2pdf")

_WIRE_STATUS = {
    JobStatus.PENDING: "starting",
    JobStatus.EXTRACTING: "downloading",
    JobStatus.DOWNLOADING: "downloading",
    JobStatus.ASSEMBLING: "downloading",
    JobStatus.COMPLETED: "completed",
    JobStatus.FAILED: "error",
}


def to_status(job: DocumentJob) -> DownloadStatus:
    filename = job.output_filename if job.status == JobStatus.COMPLETED else None
    return DownloadStatus(
        status=_WIRE_STATUS[job.status],
        progress=job.progress,
        message=job.message,
        filename=filename,
        download_url=f"/api/files/{filename}" if filename else None,
        error=job.error,
        strategy=job.strategy,
        pages=job.page_count,
    )


def purge_old_outputs(output_dir: Path, max_age_seconds: int, now: Optional[float] = None) -> int:
    """Delete output files older than max_age_seconds; returns how many went"""
    if not output_dir.exists():
        return 0
    current = now if now is not None else time.time()
    deleted = 0
    for path in output_dir.iterdir():
        if not path.is_file():
            continue
        try:
            if current - path.stat().st_mtime > max_age_seconds:
                path.unlink()
                deleted += 1
                logger.info("Deleted expired output %s", path.name)
        except FileNotFoundError:
            continue
    return deleted


def schedule_deletion(path: Path, delay_seconds: float) -> threading.Timer:
    def _delete() -> None:
        try:
            path.unlink()
            logger.info("Deleted served file %s", path.name)
        except FileNotFoundError:
            pass

    timer = threading.Timer(delay_seconds, _delete)
    timer.daemon = True
    timer.start()
    return timer


def create_app(
    settings: Optional[Settings] = None,
    config: Optional[ConfigProvider] = None,
    downloader: Optional[DocumentDownloader] = None,
) -> FastAPI:
    """Build the API with explicitly constructed services"""
    settings = settings or Settings()
    config = config or ConfigProvider.from_file(settings.config_path)
    downloader = downloader or DocumentDownloader(config=config)
    store = JobStore(retention_seconds=settings.job_retention_seconds)
    runner = JobRunner(downloader, store, workers=settings.workers)

    def output_dir() -> Path:
        return config.output_dir

    def cleanup() -> int:
        store.evict_expired()
        return purge_old_outputs(output_dir(), settings.output_retention_seconds)

    async def cleanup_loop() -> None:
        while True:
            await asyncio.sleep(settings.cleanup_interval_seconds)
            deleted = await asyncio.to_thread(cleanup)
            if deleted:
                logger.info("Scheduled cleanup removed %d files", deleted)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        output_dir().mkdir(parents=True, exist_ok=True)
        cleanup()
        task = asyncio.create_task(cleanup_loop())
        logger.info("API ready, output directory %s", output_dir())
        try:
            yield
        finally:
            task.cancel()
            runner.shutdown(wait=False)

    app = FastAPI(title="slides2pdf", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.store = store
    app.state.runner = runner
    app.state.config = config

    @app.post("/api/download", response_model=DownloadStarted)
    def start_download(request: DownloadRequest):
        url = request.url.strip()
        if not url:
            raise HTTPException(status_code=400, detail="URL is required")
        download_id = runner.submit(url, mode=request.mode)
        logger.info("Started download %s for %s", download_id[:8], url)
        return DownloadStarted(download_id=download_id)

    @app.get("/api/download/{download_id}/status", response_model=DownloadStatus)
    def download_status(download_id: str):
        job = store.get(download_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Download not found")
        return to_status(job)

    @app.get("/api/config", response_model=ConfigView)
    def read_config():
        return ConfigView(
            output=str(output_dir()),
            filename=config.get_or("DIRECTORY", "filename", "title"),
            rendertime=str(config.render_time),
        )

    @app.put("/api/config")
    def update_config():
        return {"success": True}

    @app.get("/api/downloads", response_model=List[DownloadedFile])
    def list_downloads():
        directory = output_dir()
        if not directory.exists():
            return []
        files: List[DownloadedFile] = []
        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.name.endswith(".part"):
                continue
            stats = path.stat()
            # Empty files are names reserved by jobs still assembling
            if stats.st_size == 0:
                continue
            files.append(
                DownloadedFile(
                    name=path.name,
                    path=f"/api/files/{path.name}",
                    size=stats.st_size,
                    created=datetime.fromtimestamp(stats.st_ctime, tz=timezone.utc),
                )
            )
        return files

    @app.delete("/api/downloads/cleanup")
    def cleanup_downloads():
        return {"deleted": purge_old_outputs(output_dir(), settings.output_retention_seconds)}

    @app.get("/api/files/{filename}")
    def download_file(filename: str):
        directory = output_dir()
        file_path = (directory / filename).resolve()
        if file_path.parent != directory or not file_path.is_file() or file_path.stat().st_size == 0:
            raise HTTPException(status_code=404, detail="File not found")

        schedule_deletion(file_path, settings.file_grace_seconds)
        job_id = store.find_by_output(file_path.name)
        if job_id is not None:
            store.evict(job_id)
            logger.info("Result of %s retrieved, job evicted", job_id[:8])
        return FileResponse(
            file_path,
            media_type="application/pdf",
            filename=file_path.name,
            headers={"Cache-Control": "no-cache"},
        )

    return app


def main() -> None:
    """Run the API server with uvicorn"""
    settings = Settings()
    parser = argparse.ArgumentParser(description="Run the slides2pdf API server")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Bind port")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
