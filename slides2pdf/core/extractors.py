"""
Extraction strategies - turn a fetched document page into ordered page images
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Tuple

from bs4 import BeautifulSoup

from .fetcher import Fetcher
from .errors import HttpStatusError, NetworkError
from .models import (
    AssetCandidate,
    AssetOrigin,
    ExtractionResult,
    deduplicate_candidates,
    sanitize_title,
)
from .patterns import (
    IMAGE_URL_PATTERN,
    SCRIBD_DOMAIN,
    SLIDESHARE_DOMAIN,
    extract_document_id,
    resolve_url,
    unescape_url,
)

logger = logging.getLogger("slides2pdf")

LAZY_SRC_ATTRIBUTES = ("src", "data-src", "data-lazy-src", "data-original")
PAGE_HINTS = ("page", "slide", "document")


class Extractor(ABC):
    """Base class for per-site extractors"""

    name = "extractor"
    default_title = "document"
    # Probing needs site-specific URL templates
    supports_probing = False

    def __init__(self, fetcher: Optional[Fetcher] = None):
        self.fetcher = fetcher

    def extract(self, url: str, html: str) -> ExtractionResult:
        """
        Run the heuristics in priority order

        Stops at the first heuristic that yields candidates. Never raises for
        parsing problems; an empty result means nothing was found.
        """
        soup = BeautifulSoup(html or "", "html.parser")
        title = self.extract_title(soup)

        for name, heuristic in self.heuristics():
            try:
                found = deduplicate_candidates(heuristic(url, soup))
            except (NetworkError, HttpStatusError, ValueError) as exc:
                logger.warning("%s: heuristic %s failed: %s", self.name, name, exc)
                continue
            if found:
                logger.info("%s: %s found %d images", self.name, name, len(found))
                return ExtractionResult(title=title, assets=found)
            logger.debug("%s: %s found nothing", self.name, name)

        return ExtractionResult(title=title, assets=[])

    @abstractmethod
    def heuristics(self) -> Sequence[Tuple[str, Callable[[str, BeautifulSoup], List[AssetCandidate]]]]:
        """Ordered (name, callable) pairs"""

    def extract_title_from_html(self, html: str) -> str:
        return self.extract_title(BeautifulSoup(html or "", "html.parser"))

    def extract_title(self, soup: BeautifulSoup) -> str:
        raw = ""
        if soup.title and soup.title.get_text(strip=True):
            raw = soup.title.get_text(strip=True).split(" - ")[0]
        if not raw.strip():
            heading = soup.find("h1")
            if heading:
                raw = heading.get_text(strip=True)
        if not raw.strip():
            og_title = soup.find("meta", attrs={"property": "og:title"})
            if og_title and og_title.get("content"):
                raw = og_title["content"]
        return sanitize_title(raw, default=self.default_title)

    # Shared heuristics

    @staticmethod
    def _image_source(img) -> Optional[str]:
        for attribute in LAZY_SRC_ATTRIBUTES:
            value = img.get(attribute)
            if value and not value.strip().startswith("data:"):
                return value.strip()
        return None

    def _match_selectors(
        self,
        url: str,
        soup: BeautifulSoup,
        selectors: Iterable[str],
        keep: Callable[[str], bool],
    ) -> List[AssetCandidate]:
        found: List[AssetCandidate] = []
        for selector in selectors:
            for img in soup.select(selector):
                src = self._image_source(img)
                if not src:
                    continue
                full_url = resolve_url(src, url)
                if not keep(full_url):
                    continue
                position = len(found) + 1
                found.append(
                    AssetCandidate(
                        url=full_url,
                        page_index=position,
                        origin=AssetOrigin.DOM_SELECTOR,
                        label=(img.get("alt") or f"page {position}").strip(),
                    )
                )
        return found

    @staticmethod
    def _script_texts(soup: BeautifulSoup) -> List[str]:
        return [script.string or script.get_text() or "" for script in soup.find_all("script")]

    def _scan_scripts(
        self,
        soup: BeautifulSoup,
        keep: Callable[[str], bool],
        origin: AssetOrigin,
    ) -> List[AssetCandidate]:
        combined = " ".join(self._script_texts(soup))
        found: List[AssetCandidate] = []
        for match in IMAGE_URL_PATTERN.finditer(combined):
            image_url = unescape_url(match.group(0))
            if keep(image_url):
                position = len(found) + 1
                found.append(
                    AssetCandidate(
                        url=image_url,
                        page_index=position,
                        origin=origin,
                        label=f"image {position}",
                    )
                )
        return found


class ScribdExtractor(Extractor):
    """Scribd documents, four heuristics deep"""

    name = "scribd"
    supports_probing = True

    STRUCTURED_KEYS = re.compile(
        r"""(page_images|document_pages|pageImageUrls|page_image_urls|"images")['"\\\s]*:\s*\[""",
    )
    SELECTORS = (
        'img[src*="scribd.com"]',
        'img[data-src*="scribd.com"]',
        'img[src*="document"]',
        'img[data-src*="document"]',
        'img[src*="page"]',
        'img[data-src*="page"]',
        ".page img",
        ".document_page img",
        'img[src*="/pages/"]',
        'img[data-src*="/pages/"]',
        'img[class*="page"]',
        'img[id*="page"]',
    )
    API_TEMPLATES = (
        "https://www.scribd.com/doc/{id}/pages",
        "https://www.scribd.com/document/{id}/pages",
        "https://www.scribd.com/api/document/{id}/pages",
    )
    EXHAUSTIVE_HINTS = ("scribd", "page", "document", "thumb")
    PAGE_NUMBER = re.compile(r"p\d+")

    def heuristics(self):
        return (
            ("structured-data", self._from_structured_data),
            ("dom-selectors", self._from_selectors),
            ("api-endpoints", self._from_api),
            ("script-scan", self._from_script_scan),
        )

    def _from_structured_data(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        found: List[AssetCandidate] = []

        for script in soup.find_all("script", attrs={"type": "application/json"}):
            content = script.string or script.get_text() or ""
            if "page_images" not in content:
                continue
            try:
                data = json.loads(content)
            except ValueError:
                continue
            pages = data.get("page_images") if isinstance(data, dict) else None
            if not isinstance(pages, list):
                logger.debug("%s: page_images is not a list, skipping block", self.name)
                continue
            for page in pages:
                image_url = page.get("url") if isinstance(page, dict) else page
                if isinstance(image_url, str) and image_url:
                    found.append(self._candidate(image_url, len(found) + 1, AssetOrigin.STRUCTURED_DATA))
        if found:
            return found

        for content in self._script_texts(soup):
            if not self.STRUCTURED_KEYS.search(content):
                continue
            for match in IMAGE_URL_PATTERN.finditer(content):
                image_url = unescape_url(match.group(0))
                if "scribd" in image_url or "page" in image_url:
                    found.append(self._candidate(image_url, len(found) + 1, AssetOrigin.STRUCTURED_DATA))
        return found

    def _from_selectors(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        return self._match_selectors(
            url,
            soup,
            self.SELECTORS,
            keep=lambda full_url: any(hint in full_url for hint in ("scribd", "page", "document")),
        )

    def _from_api(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        document_id = extract_document_id(url)
        if not document_id or self.fetcher is None:
            return []

        found: List[AssetCandidate] = []
        for template in self.API_TEMPLATES:
            api_url = template.format(id=document_id)
            try:
                payload = self.fetcher.fetch_json(api_url, headers={"Accept": "application/json"})
            except (NetworkError, HttpStatusError, ValueError) as exc:
                logger.debug("API endpoint %s failed: %s", api_url, exc)
                continue
            if not isinstance(payload, list):
                continue
            for page in payload:
                if not isinstance(page, dict):
                    continue
                image_url = page.get("image_url") or page.get("url")
                if isinstance(image_url, str) and image_url:
                    found.append(
                        self._candidate(resolve_url(image_url, url), len(found) + 1, AssetOrigin.API_ENDPOINT)
                    )
        return found

    def _from_script_scan(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        return self._scan_scripts(
            soup,
            keep=lambda image_url: (
                any(hint in image_url for hint in self.EXHAUSTIVE_HINTS)
                or bool(self.PAGE_NUMBER.search(image_url))
            ),
            origin=AssetOrigin.STRUCTURED_DATA,
        )

    @staticmethod
    def _candidate(image_url: str, position: int, origin: AssetOrigin) -> AssetCandidate:
        return AssetCandidate(url=image_url, page_index=position, origin=origin, label=f"page {position}")


class SlideshareExtractor(Extractor):
    """SlideShare presentations"""

    name = "slideshare"
    default_title = "presentation"

    SELECTORS = (
        'img[data-src*="slidesharecdn.com"]',
        'img[src*="slidesharecdn.com"]',
        ".slide img",
        ".slide-image img",
        'img[src*="/slide"]',
        'img[data-src*="/slide"]',
    )

    def heuristics(self):
        return (
            ("dom-selectors", self._from_selectors),
            ("script-scan", self._from_script_scan),
        )

    def _from_selectors(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        return self._match_selectors(url, soup, self.SELECTORS, keep=lambda full_url: True)

    def _from_script_scan(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        return self._scan_scripts(
            soup,
            keep=lambda image_url: "slide" in image_url,
            origin=AssetOrigin.STRUCTURED_DATA,
        )


class GenericExtractor(Extractor):
    """Any page whose images look like document pages"""

    name = "generic"

    def heuristics(self):
        return (("page-images", self._from_page_images),)

    def extract_title(self, soup: BeautifulSoup) -> str:
        raw = soup.title.get_text(strip=True) if soup.title else ""
        if not raw:
            heading = soup.find("h1")
            raw = heading.get_text(strip=True) if heading else ""
        return sanitize_title(raw, default=self.default_title)

    def _from_page_images(self, url: str, soup: BeautifulSoup) -> List[AssetCandidate]:
        found: List[AssetCandidate] = []
        for img in soup.find_all("img"):
            src = self._image_source(img)
            if not src:
                continue
            classes = " ".join(img.get("class") or [])
            hints = f"{src} {img.get('alt') or ''} {classes}".lower()
            if not any(hint in hints for hint in PAGE_HINTS):
                continue
            position = len(found) + 1
            found.append(
                AssetCandidate(
                    url=resolve_url(src, url),
                    page_index=position,
                    origin=AssetOrigin.GENERIC,
                    label=(img.get("alt") or f"image {position}").strip(),
                )
            )
        return found


class ExtractorRegistry:
    """Map URL patterns to the extractor that handles them"""

    def __init__(self, fetcher: Optional[Fetcher] = None):
        self.fetcher = fetcher
        self._entries: List[Tuple[Pattern[str], Callable[[Optional[Fetcher]], Extractor]]] = []

    @classmethod
    def default(cls, fetcher: Optional[Fetcher] = None) -> "ExtractorRegistry":
        registry = cls(fetcher)
        registry.register(SCRIBD_DOMAIN, ScribdExtractor)
        registry.register(SLIDESHARE_DOMAIN, SlideshareExtractor)
        return registry

    def register(self, pattern: Pattern[str], factory: Callable[[Optional[Fetcher]], Extractor]) -> None:
        self._entries.append((pattern, factory))

    def resolve(self, url: str) -> Optional[Extractor]:
        value = (url or "").strip()
        for pattern, factory in self._entries:
            if pattern.match(value):
                return factory(self.fetcher)
        return None

    def generic(self) -> Extractor:
        return GenericExtractor(self.fetcher)
