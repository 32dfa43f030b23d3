"""Full-bleed letterhead applied under every page."""

from __future__ import annotations

import logging
from typing import Optional

from fpdf import FPDF
from opentelemetry import trace

from quote_pdf.images import ImageFetcher, Raster

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("quote-pdf")


class BackgroundCompositor:
    """Loads the letterhead once and stretches it over each new page.

    If the asset cannot be loaded, ``apply`` draws nothing; pages without a
    letterhead are still valid output.
    """

    def __init__(self, fetcher: ImageFetcher, url: Optional[str]) -> None:
        self.fetcher = fetcher
        self.url = url
        self.raster: Optional[Raster] = None
        self._loaded = False

    async def load(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self.url:
            logger.info("No letterhead configured; pages will have no background")
            return
        with tracer.start_as_current_span("quote.load_background", attributes={"image.url": self.url}):
            self.raster = await self.fetcher.fetch_and_decode(self.url)
        if self.raster is None:
            logger.warning("Letterhead %s unavailable; rendering without background", self.url)

    def apply(self, pdf: FPDF) -> bool:
        """Draw the letterhead over the current page; True if anything was drawn.

        Must run right after the page is added, before any foreground drawing.
        """
        if self.raster is None:
            return False
        pdf.image(self.raster, x=0, y=0, w=pdf.w, h=pdf.h)
        return True
