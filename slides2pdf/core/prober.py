"""
Brute-force discovery of page images from known CDN naming patterns
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .errors import HttpStatusError, NetworkError
from .fetcher import Fetcher
from .models import MIN_ASSET_BYTES, AssetCandidate, AssetOrigin

logger = logging.getLogger("slides2pdf")

SCRIBD_BASE_TEMPLATES = (
    "https://imgv2-1-f.scribdassets.com/img/document/{id}",
    "https://imgv2-2-f.scribdassets.com/img/document/{id}",
    "https://html2pdf.files.wordpress.com/2015/01/scribd-{id}",
    "https://document-export.canva.com/DAD{id}",
    "https://www.scribd.com/doc/{id}/pages",
    "https://www.scribd.com/document/{id}/pages",
)

# {page} is substituted with the padded and then the unpadded page number.
PAGE_NAME_FORMATS = ("page_{page}", "page-{page}", "page{page}", "p{page}", "{page}")
PADDED_ONLY_EXTENSIONS = (".png",)
EXTENSIONS = (".jpg",)

DEFAULT_MAX_PAGES = 50
DEFAULT_BATCH_SIZE = 20
DEFAULT_ENOUGH = 20
PROBE_TIMEOUT = 10
PROBE_REFERER = "https://www.scribd.com/"


class BruteForceProber:
    """Guess page-image URLs and keep the ones that answer like images"""

    def __init__(
        self,
        fetcher: Fetcher,
        base_templates: Sequence[str] = SCRIBD_BASE_TEMPLATES,
        max_pages: int = DEFAULT_MAX_PAGES,
        batch_size: int = DEFAULT_BATCH_SIZE,
        enough: int = DEFAULT_ENOUGH,
        min_bytes: int = MIN_ASSET_BYTES,
    ):
        """
        Initialize prober

        Args:
            fetcher: Shared HTTP fetcher
            base_templates: Base URLs with an {id} placeholder
            max_pages: Highest page number to guess
            batch_size: Probes in flight at once
            enough: Stop after the batch that reaches this many hits
            min_bytes: Smallest content-length accepted as a real page
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.fetcher = fetcher
        self.base_templates = tuple(base_templates)
        self.max_pages = max_pages
        self.batch_size = batch_size
        self.enough = enough
        self.min_bytes = min_bytes

    def generate_candidates(self, document_id: str) -> List[str]:
        """
        Build the candidate URL list for a document

        Ordered page by page so that early batches cover the first pages on
        every base template.
        """
        if not document_id:
            return []

        bases = [template.format(id=document_id) for template in self.base_templates]
        urls: List[str] = []
        for page in range(1, self.max_pages + 1):
            padded = f"{page:03d}"
            unpadded = str(page)
            for ext in EXTENSIONS:
                for number in (padded, unpadded):
                    for name in PAGE_NAME_FORMATS:
                        stem = name.format(page=number)
                        urls.extend(f"{base}/{stem}{ext}" for base in bases)
            for ext in PADDED_ONLY_EXTENSIONS:
                for name in PAGE_NAME_FORMATS:
                    stem = name.format(page=padded)
                    urls.extend(f"{base}/{stem}{ext}" for base in bases)
        return urls

    def probe(self, url: str) -> bool:
        """Cheap existence check; never raises"""
        try:
            response = self.fetcher.head(url, referer=PROBE_REFERER, timeout=PROBE_TIMEOUT)
        except (NetworkError, HttpStatusError):
            return False
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Probe of %s failed unexpectedly: %s", url, exc)
            return False

        return response.content_type.startswith("image/") and response.content_length > self.min_bytes

    def find_candidates(
        self,
        document_id: Optional[str],
        probe: Optional[Callable[[str], bool]] = None,
    ) -> List[AssetCandidate]:
        """
        Probe generated URLs in fixed-size batches

        Stops after the batch in which `enough` hits have been collected;
        the rest of the candidates are never probed.
        """
        if not document_id:
            return []

        check = probe or self.probe
        urls = self.generate_candidates(document_id)
        total_batches = (len(urls) + self.batch_size - 1) // self.batch_size
        logger.info("Probing %d candidate URLs for document %s", len(urls), document_id)

        found: List[AssetCandidate] = []
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for batch_number, start in enumerate(range(0, len(urls), self.batch_size), start=1):
                batch = urls[start : start + self.batch_size]
                logger.debug("Probing batch %d/%d", batch_number, total_batches)
                for url, exists in zip(batch, executor.map(check, batch)):
                    if not exists:
                        continue
                    position = len(found) + 1
                    found.append(
                        AssetCandidate(
                            url=url,
                            page_index=position,
                            origin=AssetOrigin.BRUTE_FORCE,
                            label=f"page {position}",
                        )
                    )
                    logger.debug("Found image %s", url)

                if self.enough and len(found) >= self.enough:
                    logger.info("Found %d images, enough to continue", len(found))
                    break

        return found
