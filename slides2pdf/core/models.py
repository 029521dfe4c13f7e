"""
Data models for slides2pdf
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

MIN_ASSET_BYTES = 1000
MAX_TITLE_LENGTH = 100
DEFAULT_TITLE = "document"

_UNSAFE_TITLE_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")


class JobStatus(str, Enum):
    """Lifecycle states of a DocumentJob"""
    PENDING = "pending"
    EXTRACTING = "extracting"
    DOWNLOADING = "downloading"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class AssetOrigin(str, Enum):
    """Which strategy produced an asset candidate"""
    STRUCTURED_DATA = "structured-data"
    DOM_SELECTOR = "dom-selector"
    API_ENDPOINT = "api-endpoint"
    BRUTE_FORCE = "brute-force"
    GENERIC = "generic"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sanitize_title(title: Optional[str], default: str = DEFAULT_TITLE) -> str:
    """
    Make a page title safe to use as a filename stem

    Characters other than word characters, whitespace and dashes are dropped,
    whitespace runs become underscores and the result is capped at
    MAX_TITLE_LENGTH characters. Applying it twice changes nothing.
    """
    text = _UNSAFE_TITLE_CHARS.sub("", title or "")
    text = _WHITESPACE.sub("_", text.strip())
    text = text[:MAX_TITLE_LENGTH]
    return text or default


@dataclass
class AssetCandidate:
    """A remote image believed to be one page of the document"""
    url: str
    page_index: int
    origin: AssetOrigin
    label: str = ""

    def __str__(self):
        return f"#{self.page_index} {self.url} ({self.origin.value})"


@dataclass
class DownloadedAsset:
    """A candidate that was fetched to local storage"""
    local_path: Path
    byte_size: int
    content_type: str
    page_index: int
    url: str = ""


@dataclass
class OutputArtifact:
    """The assembled output document"""
    path: Path
    page_count: int

    def __str__(self):
        return f"{self.path} ({self.page_count} pages)"


@dataclass
class ExtractionResult:
    """Title and ordered candidates produced by an extractor"""
    title: str
    assets: List[AssetCandidate] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.assets


@dataclass
class DocumentJob:
    """One end-to-end attempt at turning a URL into a PDF"""
    source_url: str
    mode: str = "/i"
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    document_id: Optional[str] = None
    title: str = DEFAULT_TITLE
    status: JobStatus = JobStatus.PENDING

    # Progress reporting
    progress: int = 0
    message: str = ""
    strategy: Optional[str] = None
    error: Optional[str] = None
    output_path: Optional[Path] = None
    page_count: int = 0

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def set_title(self, raw_title: Optional[str]) -> None:
        self.title = sanitize_title(raw_title)

    def transition(self, status: JobStatus, message: str = "") -> None:
        self.status = status
        if message:
            self.message = message
        self.updated_at = _utcnow()

    @property
    def output_filename(self) -> Optional[str]:
        return self.output_path.name if self.output_path else None

    def __str__(self):
        return f"Job {self.job_id[:8]} [{self.status.value}] {self.source_url}"


def deduplicate_candidates(candidates: Iterable[AssetCandidate]) -> List[AssetCandidate]:
    """
    Collapse candidates sharing a URL

    First-seen order wins and page indexes are renumbered from 1 so the
    result is contiguous.
    """
    seen = set()
    unique: List[AssetCandidate] = []
    for candidate in candidates:
        if candidate.url in seen:
            continue
        seen.add(candidate.url)
        unique.append(replace(candidate, page_index=len(unique) + 1))
    return unique
