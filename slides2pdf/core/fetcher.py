"""
HTTP fetching with browser-like headers
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests
import urllib3

from .errors import HttpStatusError, NetworkError

logger = logging.getLogger("slides2pdf")

# Target sites often serve broken certificate chains.
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

DEFAULT_TIMEOUT = 45
DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) AppleWebKit/605.1.15"
)
DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
    "Referer": "https://www.google.com/",
}


@dataclass
class FetchResponse:
    """Raw result of an HTTP request"""
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @property
    def content_type(self) -> str:
        return self.header("Content-Type").split(";")[0].strip().lower()

    @property
    def content_length(self) -> int:
        try:
            return int(self.header("Content-Length") or 0)
        except ValueError:
            return 0

    def header(self, name: str) -> str:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)


class Fetcher:
    """Issue outbound requests the way a desktop browser would"""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Mapping[str, str]] = None,
        session: Optional[requests.Session] = None,
        verify: bool = False,
    ):
        """
        Initialize fetcher

        Args:
            timeout: Default per-request timeout in seconds
            headers: Headers merged over DEFAULT_HEADERS
            session: Optional pre-built requests session
            verify: Verify TLS certificates (off by default)
        """
        self.timeout = timeout
        self.verify = verify
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)
        self.session = session or requests.Session()

    def fetch(
        self,
        url: str,
        *,
        referer: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        method: str = "GET",
    ) -> FetchResponse:
        """
        Fetch a URL

        Raises:
            NetworkError: On timeout or connection failure
            HttpStatusError: On a non-2xx response
        """
        request_headers = dict(self.headers)
        if headers:
            request_headers.update(headers)
        if referer:
            request_headers["Referer"] = referer

        try:
            response = self.session.request(
                method,
                url,
                headers=request_headers,
                timeout=timeout or self.timeout,
                verify=self.verify,
                allow_redirects=True,
            )
        except requests.Timeout as exc:
            raise NetworkError(f"Timed out fetching {url}", url=url) from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Request failed: {url} ({exc})", url=url) from exc

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, url)

        return FetchResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content if method.upper() != "HEAD" else b"",
            url=response.url or url,
        )

    def head(self, url: str, **kwargs: Any) -> FetchResponse:
        return self.fetch(url, method="HEAD", **kwargs)

    def fetch_text(self, url: str, **kwargs: Any) -> str:
        return self.fetch(url, **kwargs).text

    def fetch_json(self, url: str, **kwargs: Any) -> Any:
        """Fetch and decode a JSON body, raising ValueError when it is not JSON"""
        return self.fetch(url, **kwargs).json()

    def close(self) -> None:
        self.session.close()
