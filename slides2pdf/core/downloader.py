"""
Download page images to a local working directory
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import HttpStatusError, NetworkError, NoAssetsDownloadedError
from .fetcher import MOBILE_USER_AGENT, Fetcher
from .models import MIN_ASSET_BYTES, AssetCandidate, DownloadedAsset

logger = logging.getLogger("slides2pdf")

DOWNLOAD_TIMEOUT = 30


@dataclass(frozen=True)
class RequestProfile:
    """One set of header overrides to try when fetching an image"""
    name: str
    referer: Optional[str] = None
    user_agent: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"}
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        return headers


DEFAULT_PROFILES = (
    RequestProfile("scribd-referer", referer="https://www.scribd.com/"),
    RequestProfile("google-referer", referer="https://www.google.com/"),
    RequestProfile("mobile", user_agent=MOBILE_USER_AGENT),
)

_CONTENT_TYPE_EXTENSIONS = (
    ("png", ".png"),
    ("gif", ".gif"),
    ("webp", ".webp"),
)


def extension_for(content_type: str, data: bytes = b"") -> str:
    """
    Choose a file extension for a downloaded image

    The file signature wins over the Content-Type header; unknown types
    default to .jpg.
    """
    sniffed = detect_image_extension(data)
    if sniffed:
        return sniffed
    lowered = (content_type or "").lower()
    for marker, ext in _CONTENT_TYPE_EXTENSIONS:
        if marker in lowered:
            return ext
    return ".jpg"


def detect_image_extension(data: bytes) -> Optional[str]:
    header = data[:12]
    if header.startswith(b"\x89PNG\r\n\x1a\n"):
        return ".png"
    if header.startswith(b"\xff\xd8\xff"):
        return ".jpg"
    if header[:6] in (b"GIF87a", b"GIF89a"):
        return ".gif"
    if header.startswith(b"RIFF") and header[8:12] == b"WEBP":
        return ".webp"
    if header.startswith(b"BM"):
        return ".bmp"
    return None


class Downloader:
    """Fetch asset candidates one by one, retrying with alternate headers"""

    def __init__(
        self,
        fetcher: Fetcher,
        profiles: Sequence[RequestProfile] = DEFAULT_PROFILES,
        min_bytes: int = MIN_ASSET_BYTES,
        timeout: float = DOWNLOAD_TIMEOUT,
    ):
        self.fetcher = fetcher
        self.profiles = tuple(profiles)
        self.min_bytes = min_bytes
        self.timeout = timeout

    def download_all(self, candidates: Sequence[AssetCandidate], dest_dir: Path) -> List[DownloadedAsset]:
        """
        Download candidates in page order

        Args:
            candidates: Deduplicated asset candidates
            dest_dir: Directory owned by the current job

        Returns:
            Successfully downloaded assets, named page_NNN.<ext>

        Raises:
            NoAssetsDownloadedError: If not a single candidate succeeded
        """
        dest = Path(dest_dir)
        dest.mkdir(parents=True, exist_ok=True)

        ordered = sorted(candidates, key=lambda c: c.page_index)
        logger.info("Downloading %d images", len(ordered))

        downloaded: List[DownloadedAsset] = []
        for position, candidate in enumerate(ordered, start=1):
            logger.debug("Downloading image %d/%d: %s", position, len(ordered), candidate.url)
            asset = self._download_one(candidate, dest, sequence=len(downloaded) + 1)
            if asset is None:
                logger.warning("Could not download image %d: %s", position, candidate.url)
                continue
            downloaded.append(asset)

        if not downloaded:
            raise NoAssetsDownloadedError(
                f"None of the {len(ordered)} images could be downloaded"
            )
        return downloaded

    def _download_one(self, candidate: AssetCandidate, dest: Path, sequence: int) -> Optional[DownloadedAsset]:
        for profile in self.profiles:
            try:
                response = self.fetcher.fetch(
                    candidate.url,
                    referer=profile.referer,
                    headers=profile.headers(),
                    timeout=self.timeout,
                )
            except (NetworkError, HttpStatusError) as exc:
                logger.debug("Profile %s failed for %s: %s", profile.name, candidate.url, exc)
                continue

            data = response.body
            ext = extension_for(response.content_type, data)
            path = dest / f"page_{sequence:03d}{ext}"
            path.write_bytes(data)

            size = path.stat().st_size
            if size <= self.min_bytes:
                logger.debug("Discarding %s: only %d bytes", path.name, size)
                path.unlink()
                continue

            logger.debug("Saved %s (%d bytes)", path.name, size)
            return DownloadedAsset(
                local_path=path,
                byte_size=size,
                content_type=response.content_type or "application/octet-stream",
                page_index=candidate.page_index,
                url=candidate.url,
            )
        return None
