"""
Error taxonomy for slides2pdf
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple


class Slides2PdfError(RuntimeError):
    """Base class for every error raised by slides2pdf."""


class NetworkError(Slides2PdfError):
    """Raised on timeouts and connection failures."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class HttpStatusError(Slides2PdfError):
    """Raised when a response comes back with a non-2xx status."""

    def __init__(self, status_code: int, url: str):
        super().__init__(f"HTTP {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class ExtractionEmptyError(Slides2PdfError):
    """Raised when a strategy found no asset candidates."""


class NoAssetsDownloadedError(Slides2PdfError):
    """Raised when none of the candidates could be downloaded."""


class AssemblyError(Slides2PdfError):
    """Raised when downloaded images cannot be turned into a document."""


class MissingKeyError(Slides2PdfError, KeyError):
    """Raised when a configuration section or key is absent."""

    def __init__(self, section: str, key: str):
        Slides2PdfError.__init__(self, f"Unknown key: {section}.{key}")
        self.section = section
        self.key = key

    def __str__(self) -> str:
        return f"Unknown key: {self.section}.{self.key}"


class StrategiesExhaustedError(Slides2PdfError):
    """Common base for the aggregated failures raised by the orchestrator."""

    headline = "All strategies failed"

    def __init__(self, url: str, failures: Sequence[Tuple[str, str]]):
        self.url = url
        self.failures: List[Tuple[str, str]] = list(failures)
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.failures:
            return f"{self.headline} for {self.url}"
        reasons = "; ".join(f"{name}: {reason}" for name, reason in self.failures)
        return f"{self.headline} for {self.url} ({reasons})"


class AllStrategiesFailedError(StrategiesExhaustedError):
    """Every strategy planned for a supported site failed."""


class UnsupportedUrlError(StrategiesExhaustedError):
    """No site handler matched and generic extraction found nothing."""

    headline = "Unsupported URL"
