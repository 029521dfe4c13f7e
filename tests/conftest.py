"""
Shared fakes and fixtures
"""
import io
import random
from typing import Callable, Dict, List, Optional, Union

import pytest
from PIL import Image

from slides2pdf.core.config import ConfigProvider
from slides2pdf.core.errors import HttpStatusError
from slides2pdf.core.fetcher import Fetcher, FetchResponse


def make_png(seed: int = 0, size: int = 40) -> bytes:
    """Noise image, large enough to pass the minimum size check"""
    rng = random.Random(seed)
    pixels = bytes(rng.getrandbits(8) for _ in range(size * size * 3))
    image = Image.frombytes("RGB", (size, size), pixels)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


Route = Union[FetchResponse, Exception, Callable[..., FetchResponse]]


class FakeFetcher(Fetcher):
    """Fetcher answering from a url -> response table"""

    def __init__(self, routes: Optional[Dict[str, Route]] = None):
        super().__init__()
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[Dict] = []

    def add_html(self, url: str, html: str) -> None:
        self.routes[url] = FetchResponse(
            status=200,
            headers={"Content-Type": "text/html; charset=utf-8"},
            body=html.encode("utf-8"),
            url=url,
        )

    def add_image(self, url: str, data: bytes, content_type: str = "image/png") -> None:
        self.routes[url] = FetchResponse(
            status=200,
            headers={"Content-Type": content_type, "Content-Length": str(len(data))},
            body=data,
            url=url,
        )

    def fetch(self, url, *, referer=None, headers=None, timeout=None, method="GET"):
        self.calls.append({"url": url, "referer": referer, "headers": headers, "method": method})
        route = self.routes.get(url)
        if route is None:
            raise HttpStatusError(404, url)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(url=url, referer=referer, headers=headers, method=method)
        if method == "HEAD":
            return FetchResponse(status=route.status, headers=route.headers, body=b"", url=url)
        return route

    def urls_called(self, method: str = "GET") -> List[str]:
        return [call["url"] for call in self.calls if call["method"] == method]


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def config(tmp_path) -> ConfigProvider:
    return ConfigProvider(
        {
            "DIRECTORY": {
                "output": str(tmp_path / "output"),
                "filename": "title",
                "temp": str(tmp_path / "temp"),
            },
            "SCRIBD": {"rendertime": "100"},
        }
    )
