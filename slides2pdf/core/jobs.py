"""
Background jobs - progress store and runner used by the API server
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .errors import Slides2PdfError
from .models import DocumentJob, JobStatus
from .orchestrator import DocumentDownloader

logger = logging.getLogger("slides2pdf")

DEFAULT_RETENTION_SECONDS = 60 * 60


class JobStore:
    """Thread-safe job_id -> DocumentJob map with a retention window"""

    def __init__(self, retention_seconds: int = DEFAULT_RETENTION_SECONDS):
        self.retention = timedelta(seconds=retention_seconds)
        self._jobs: Dict[str, DocumentJob] = {}
        self._lock = threading.Lock()

    def insert(self, job: DocumentJob) -> DocumentJob:
        with self._lock:
            if job.job_id in self._jobs:
                raise KeyError(f"Job already exists: {job.job_id}")
            self._jobs[job.job_id] = job
        return job

    def get(self, job_id: str) -> Optional[DocumentJob]:
        """Return a snapshot of the job so readers never see a half-written update"""
        with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job is not None else None

    def update(self, job_id: str, **fields: Any) -> DocumentJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise KeyError(f"Unknown job: {job_id}")
            for name, value in fields.items():
                if not hasattr(job, name):
                    raise AttributeError(f"DocumentJob has no field {name!r}")
                setattr(job, name, value)
            job.updated_at = datetime.now(timezone.utc)
            return replace(job)

    def save(self, job: DocumentJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = replace(job)

    def find_by_output(self, filename: str) -> Optional[str]:
        """Id of the completed job that produced filename, if still stored"""
        with self._lock:
            for job_id, job in self._jobs.items():
                if job.status == JobStatus.COMPLETED and job.output_filename == filename:
                    return job_id
        return None

    def evict(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def evict_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Drop terminal jobs whose last update is older than the retention window"""
        cutoff = (now or datetime.now(timezone.utc)) - self.retention
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.status.is_terminal and job.updated_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.info("Evicted %d expired jobs", len(expired))
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)


class JobRunner:
    """Run DocumentDownloader.execute off the request thread"""

    def __init__(self, downloader: DocumentDownloader, store: JobStore, workers: int = 2):
        self.downloader = downloader
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="slides2pdf-job")

    def submit(self, url: str, mode: str = "/i") -> str:
        """Register a job and start it; returns the job id immediately"""
        job = DocumentJob(source_url=url, mode=mode, message="Starting download")
        self.store.insert(job)
        self._executor.submit(self._run, job.job_id)
        return job.job_id

    def run_sync(self, url: str, mode: str = "/i") -> DocumentJob:
        """Run a job on the calling thread and return its final state"""
        job = DocumentJob(source_url=url, mode=mode)
        self.store.insert(job)
        self._run(job.job_id)
        return self.store.get(job.job_id)

    def _run(self, job_id: str) -> None:
        job = self.store.get(job_id)
        if job is None:
            return

        def report(current: DocumentJob, percent: int, message: str) -> None:
            current.progress = percent
            current.message = message
            self.store.save(current)

        try:
            self.downloader.execute(job.source_url, mode=job.mode, job=job, on_progress=report)
        except Slides2PdfError as exc:
            logger.error("Job %s failed: %s", job_id[:8], exc)
            job.error = str(exc)
            job.transition(JobStatus.FAILED, "Download failed")
            job.progress = 0
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unexpected error in job %s", job_id[:8])
            job.error = str(exc) or exc.__class__.__name__
            job.transition(JobStatus.FAILED, "Download failed")
            job.progress = 0
        self.store.save(job)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
