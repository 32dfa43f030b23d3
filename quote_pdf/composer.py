"""Document composer: turns one quote record into PDF bytes.

Order of work:
1. load the letterhead, open page 1 and lay it down
2. branch box at its fixed spot, then reset the cursor to the content top
3. header, parties
4. preload every item thumbnail, then the item table
5. totals, payment/shipping, notes
6. customization gallery (images loaded one at a time)
7. serialize

Only a missing or malformed record is an error.  Missing optional parts and
unreachable images degrade the document instead.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Optional, Union

from pydantic import ValidationError

from quote_pdf.audit import log_generation_completed, log_generation_started
from quote_pdf.background import BackgroundCompositor
from quote_pdf.config import QuoteConfig, config as default_config
from quote_pdf.images import ImageFetcher
from quote_pdf.layout import LayoutCursor, Placement, new_document
from quote_pdf.models import DocumentRecord
from quote_pdf.normalizer import normalize
from quote_pdf.sections import (
    draw_branch_box,
    draw_gallery,
    draw_header,
    draw_items,
    draw_notes,
    draw_parties,
    draw_payment_shipping,
    draw_totals,
)
from quote_pdf.telemetry import get_tracer

logger = logging.getLogger(__name__)


class MissingDocumentError(ValueError):
    """The top-level record is absent or malformed; nothing was generated."""


def coerce_record(document: Union[DocumentRecord, dict, None]) -> DocumentRecord:
    if document is None:
        raise MissingDocumentError("No document record supplied")
    if isinstance(document, DocumentRecord):
        return document
    if isinstance(document, dict):
        try:
            return DocumentRecord.model_validate(document)
        except ValidationError as exc:
            raise MissingDocumentError(f"Malformed document record: {exc}") from exc
    raise MissingDocumentError(
        f"Expected a DocumentRecord or mapping, got {type(document).__name__}"
    )


class DocumentComposer:
    """Single-use engine: one record, one cursor, one image cache."""

    def __init__(
        self,
        record: DocumentRecord,
        fetcher: ImageFetcher,
        *,
        letterhead_url: Optional[str] = None,
        generated_on: Optional[date] = None,
    ) -> None:
        self.record = normalize(record)
        self.fetcher = fetcher
        self.generated_on = generated_on or date.today()
        self.pdf = new_document()
        self.background = BackgroundCompositor(fetcher, letterhead_url)
        self.cursor = LayoutCursor(self.pdf, self.background)
        self._rendered = False

    @property
    def placements(self) -> list[Placement]:
        return self.cursor.placements

    @property
    def page_count(self) -> int:
        return self.pdf.page_no()

    async def render(self) -> bytes:
        if self._rendered:
            raise RuntimeError("DocumentComposer instances render exactly once")
        self._rendered = True

        record = self.record
        items = record.items or []

        await self.background.load()
        self.cursor.new_page()

        draw_branch_box(self.cursor, record.branch)
        self.cursor.reset()

        draw_header(self.cursor, record, self.generated_on)
        draw_parties(self.cursor, record.client, record.vendor)

        thumbnails = await self.fetcher.preload(item.product.image_url for item in items)
        draw_items(self.cursor, items, thumbnails)

        draw_totals(self.cursor, record)
        draw_payment_shipping(self.cursor, record.payment, record.shipping)
        draw_notes(self.cursor, record.notes)
        await draw_gallery(self.cursor, items, self.fetcher)

        return bytes(self.pdf.output())


async def generate(
    document: Union[DocumentRecord, dict, None],
    *,
    fetcher: Optional[ImageFetcher] = None,
    settings: QuoteConfig = default_config,
    generated_on: Optional[date] = None,
) -> bytes:
    """Render *document* to PDF bytes.

    Raises ``MissingDocumentError`` before any I/O when the record is
    absent or malformed.  Pass a *fetcher* to control networking (tests);
    otherwise a fresh one is built from *settings* for this call only.
    """
    record = coerce_record(document)
    if fetcher is None:
        fetcher = ImageFetcher(origin=settings.asset_origin, timeout=settings.image_timeout)

    tracer = get_tracer()
    with tracer.start_as_current_span(
        "quote.generate",
        attributes={"document.number": record.number},
    ) as span:
        log_generation_started(record.number, len(record.items or []))
        t0 = time.perf_counter()

        composer = DocumentComposer(
            record,
            fetcher,
            letterhead_url=settings.letterhead_url,
            generated_on=generated_on,
        )
        data = await composer.render()

        duration_ms = (time.perf_counter() - t0) * 1000.0
        log_generation_completed(
            document_number=record.number,
            page_count=composer.page_count,
            byte_size=len(data),
            failed_assets=len(fetcher.failed),
            duration_ms=duration_ms,
        )
        span.set_attribute("document.page_count", composer.page_count)
        span.set_attribute("document.failed_assets", len(fetcher.failed))
        logger.debug("Layout for %s: %s", record.number, composer.placements)

        return data
