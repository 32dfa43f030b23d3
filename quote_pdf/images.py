"""Remote raster loading with a per-generation cache.

Every image the document references (letterhead, thumbnails, customization
photos) goes through one ``ImageFetcher``.  A load is a single bounded
attempt: it either yields a decoded Pillow image or ``None``.  Outcomes are
cached by the URL string as given, failures included, so a URL is fetched
at most once per fetcher.

A fetcher belongs to one generation; never share it between concurrent
documents.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

import httpx
from opentelemetry import trace
from PIL import Image

from quote_pdf.audit import log_asset_failed
from quote_pdf.config import config

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("quote-pdf")

Raster = Image.Image


def resolve_url(url: str, origin: str) -> str:
    """Resolve origin-relative paths ("/uploads/x.png") against *origin*.

    Absolute URLs, including cross-origin ones, are returned unchanged.
    """
    if urlparse(url).scheme in ("http", "https"):
        return url
    if url.startswith("//"):
        return f"{urlparse(origin).scheme or 'https'}:{url}"
    if not origin:
        raise ValueError(f"cannot resolve relative image path without an origin: {url}")
    return urljoin(origin.rstrip("/") + "/", url.lstrip("/"))


def decode_raster(data: bytes) -> Raster:
    """Decode *data* into an in-memory image that fpdf2 can embed."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode in ("RGB", "RGBA", "L"):
            return img.copy()
        return img.convert("RGBA")


class ImageFetcher:
    """Fetch-and-decode with timeout, null-on-failure and URL memoization."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        origin: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self.origin = config.asset_origin if origin is None else origin
        self.timeout = config.image_timeout if timeout is None else timeout
        self._cache: dict[str, asyncio.Future] = {}
        self.failed: list[str] = []

    async def fetch_and_decode(self, url: str) -> Optional[Raster]:
        """Return the decoded image for *url*, or ``None`` if it cannot be had.

        Concurrent callers asking for the same URL share one in-flight load.
        """
        future = self._cache.get(url)
        if future is None:
            future = asyncio.ensure_future(self._load_with_timeout(url))
            self._cache[url] = future
        return await future

    async def preload(self, urls: Iterable[Optional[str]]) -> dict[str, Optional[Raster]]:
        """Load a batch concurrently; resolves once every URL has an outcome."""
        unique = list(dict.fromkeys(u for u in urls if u))
        with tracer.start_as_current_span("quote.preload_images", attributes={"image.count": len(unique)}):
            results = await asyncio.gather(*(self.fetch_and_decode(u) for u in unique))
        return dict(zip(unique, results))

    def cached(self, url: str) -> bool:
        return url in self._cache

    async def _load_with_timeout(self, url: str) -> Optional[Raster]:
        with tracer.start_as_current_span("quote.fetch_image", attributes={"image.url": url}) as span:
            try:
                raster = await asyncio.wait_for(self._load(url), timeout=self.timeout)
            except asyncio.TimeoutError:
                self._record_failure(url, f"timed out after {self.timeout:.1f}s")
                span.set_attribute("image.ok", False)
                return None
            except (httpx.HTTPError, httpx.InvalidURL, ValueError, OSError, Image.DecompressionBombError) as exc:
                self._record_failure(url, f"{type(exc).__name__}: {exc}")
                span.set_attribute("image.ok", False)
                return None
            span.set_attribute("image.ok", True)
            return raster

    async def _load(self, url: str) -> Raster:
        target = resolve_url(url, self.origin)
        if self._client is not None:
            resp = await self._client.get(target)
        else:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(target)
        resp.raise_for_status()
        logger.debug("Fetched image: %d bytes from %s", len(resp.content), target)
        return decode_raster(resp.content)

    def _record_failure(self, url: str, reason: str) -> None:
        logger.warning("Failed to load image %s: %s", url, reason)
        log_asset_failed(url, reason)
        self.failed.append(url)
