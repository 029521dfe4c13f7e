"""
Main downloader - plans strategies per URL and runs them until one works
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .assembler import PdfAssembler
from .config import ConfigProvider
from .downloader import Downloader
from .errors import (
    AllStrategiesFailedError,
    ExtractionEmptyError,
    Slides2PdfError,
    UnsupportedUrlError,
)
from .extractors import Extractor, ExtractorRegistry
from .fetcher import Fetcher
from .models import DocumentJob, DownloadedAsset, JobStatus, OutputArtifact
from .patterns import extract_document_id
from .prober import BruteForceProber

logger = logging.getLogger("slides2pdf")

ProgressCallback = Callable[[DocumentJob, int, str], None]


class Strategy(ABC):
    """One way of turning a job into downloaded page images"""

    name = "strategy"

    def __init__(self, fetcher: Fetcher, downloader: Downloader):
        self.fetcher = fetcher
        self.downloader = downloader

    @abstractmethod
    def attempt(self, job: DocumentJob, work_dir: Path, report: ProgressCallback) -> List[DownloadedAsset]:
        """Return downloaded assets or raise a Slides2PdfError"""

    def __str__(self):
        return self.name


class ExtractionStrategy(Strategy):
    """Fetch the document page and hand it to an extractor"""

    def __init__(self, extractor: Extractor, fetcher: Fetcher, downloader: Downloader):
        super().__init__(fetcher, downloader)
        self.extractor = extractor
        self.name = f"{extractor.name}-extraction"

    def attempt(self, job, work_dir, report):
        job.transition(JobStatus.EXTRACTING)
        report(job, 25, f"Extracting pages ({self.name})")

        html = self.fetcher.fetch_text(job.source_url)
        result = self.extractor.extract(job.source_url, html)
        job.set_title(result.title)
        if result.is_empty:
            raise ExtractionEmptyError(f"{self.extractor.name} extractor found no page images")

        logger.info("%s: %d candidate images", self.name, len(result.assets))
        job.transition(JobStatus.DOWNLOADING)
        report(job, 50, f"Downloading {len(result.assets)} images")
        return self.downloader.download_all(result.assets, work_dir)


class BruteForceStrategy(Strategy):
    """Guess CDN image URLs from the document id"""

    name = "brute-force"

    def __init__(self, prober: BruteForceProber, title_extractor: Extractor, fetcher: Fetcher, downloader: Downloader):
        super().__init__(fetcher, downloader)
        self.prober = prober
        self.title_extractor = title_extractor

    def attempt(self, job, work_dir, report):
        if not job.document_id:
            raise ExtractionEmptyError("No document id in URL, probing skipped")

        html = self.fetcher.fetch_text(job.source_url)
        job.set_title(self.title_extractor.extract_title_from_html(html))

        job.transition(JobStatus.EXTRACTING, "Probing image URLs")
        report(job, 30, "Probing image URLs")
        candidates = self.prober.find_candidates(job.document_id)
        if not candidates:
            raise ExtractionEmptyError("No valid images found by probing")

        job.transition(JobStatus.DOWNLOADING)
        report(job, 50, f"Downloading {len(candidates)} images")
        return self.downloader.download_all(candidates, work_dir)


class DocumentDownloader:
    """Turn a document URL into a PDF, trying strategies in priority order"""

    def __init__(
        self,
        config: Optional[ConfigProvider] = None,
        fetcher: Optional[Fetcher] = None,
        registry: Optional[ExtractorRegistry] = None,
        downloader: Optional[Downloader] = None,
        prober: Optional[BruteForceProber] = None,
        assembler: Optional[PdfAssembler] = None,
    ):
        """
        Initialize downloader

        Args:
            config: Config provider (output and temp directories)
            fetcher: Shared HTTP fetcher
            registry: URL pattern to extractor registry
            downloader: Image downloader
            prober: Brute-force prober for sites that support it
            assembler: Image to PDF assembler
        """
        self.config = config or ConfigProvider()
        self.fetcher = fetcher or Fetcher()
        self.registry = registry or ExtractorRegistry.default(self.fetcher)
        self.downloader = downloader or Downloader(self.fetcher)
        self.prober = prober or BruteForceProber(self.fetcher)
        self.assembler = assembler or PdfAssembler()

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    def plan(self, url: str) -> Tuple[List[Strategy], bool]:
        """
        Strategies for a URL in priority order

        Returns the list and whether a site-specific handler matched.
        """
        strategies: List[Strategy] = []
        site_extractor = self.registry.resolve(url)
        if site_extractor is not None:
            strategies.append(ExtractionStrategy(site_extractor, self.fetcher, self.downloader))
            if site_extractor.supports_probing and extract_document_id(url):
                strategies.append(
                    BruteForceStrategy(self.prober, site_extractor, self.fetcher, self.downloader)
                )
        strategies.append(ExtractionStrategy(self.registry.generic(), self.fetcher, self.downloader))
        return strategies, site_extractor is not None

    def execute(
        self,
        url: str,
        mode: str = "/i",
        job: Optional[DocumentJob] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Download a document and return the path of the assembled PDF

        Raises:
            UnsupportedUrlError: If no handler matched and generic extraction failed
            AllStrategiesFailedError: If every planned strategy failed
        """
        job = job or DocumentJob(source_url=url, mode=mode)
        job.document_id = extract_document_id(url)
        report = on_progress or _ignore_progress

        logger.info("Processing %s", url)
        strategies, site_matched = self.plan(url)
        failures: List[Tuple[str, str]] = []

        temp_root = self.config.temp_root
        if temp_root is not None:
            temp_root.mkdir(parents=True, exist_ok=True)
        job_dir = Path(tempfile.mkdtemp(prefix=f"slides2pdf-{job.job_id[:8]}-", dir=temp_root))

        try:
            for index, strategy in enumerate(strategies, start=1):
                logger.info("Strategy %d/%d: %s", index, len(strategies), strategy.name)
                job.strategy = strategy.name
                work_dir = job_dir / f"{index:02d}-{strategy.name}"
                try:
                    assets = strategy.attempt(job, work_dir, report)
                    artifact = self._assemble(job, assets, report)
                except Slides2PdfError as exc:
                    logger.warning("Strategy %s failed: %s", strategy.name, exc)
                    failures.append((strategy.name, str(exc)))
                    shutil.rmtree(work_dir, ignore_errors=True)
                    continue
                except Exception as exc:  # pylint: disable=broad-except
                    logger.warning("Strategy %s crashed: %r", strategy.name, exc, exc_info=True)
                    failures.append((strategy.name, str(exc) or exc.__class__.__name__))
                    shutil.rmtree(work_dir, ignore_errors=True)
                    continue

                job.output_path = artifact.path
                job.page_count = artifact.page_count
                job.error = None
                job.transition(JobStatus.COMPLETED, "Download completed")
                report(job, 100, "Download completed")
                logger.info("Completed with %s: %s", strategy.name, artifact)
                return str(artifact.path)

            error_cls = AllStrategiesFailedError if site_matched else UnsupportedUrlError
            error = error_cls(url, failures)
            job.error = str(error)
            job.transition(JobStatus.FAILED, "Download failed")
            report(job, 0, "Download failed")
            raise error
        finally:
            shutil.rmtree(job_dir, ignore_errors=True)

    def _assemble(self, job: DocumentJob, assets: List[DownloadedAsset], report: ProgressCallback) -> OutputArtifact:
        job.transition(JobStatus.ASSEMBLING)
        report(job, 80, f"Assembling {len(assets)} pages")

        ordered = [asset.local_path for asset in sorted(assets, key=lambda a: a.local_path.name)]
        output_path = self._claim_output_path(job)
        try:
            return self.assembler.assemble(ordered, output_path)
        except Exception:
            output_path.unlink(missing_ok=True)
            raise

    def _claim_output_path(self, job: DocumentJob) -> Path:
        """Reserve <title>.pdf, or <title>_<token>.pdf when it is taken"""
        output_dir = self.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        for stem in (job.title, f"{job.title}_{job.job_id[:8]}", f"{job.title}_{job.job_id}"):
            candidate = output_dir / f"{stem}.pdf"
            try:
                with candidate.open("xb"):
                    pass
            except FileExistsError:
                continue
            return candidate
        raise FileExistsError(f"No free output name for {job.title}")


def _ignore_progress(job: DocumentJob, percent: int, message: str) -> None:
    return None
