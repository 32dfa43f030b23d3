"""Page geometry and the cooperative write cursor.

There is no automatic layout pass.  Each section renderer asks the cursor
for room with ``ensure_space`` before drawing a block that must stay on one
page, draws at ``cursor.y``, then moves the cursor with ``advance`` by
exactly the height it used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fpdf import FPDF

from quote_pdf.background import BackgroundCompositor
from quote_pdf.formatting import pdf_safe

logger = logging.getLogger(__name__)

# A4 portrait, millimetres
PAGE_FORMAT = "A4"
TOP_MARGIN = 45.0  # below the letterhead band
BOTTOM_MARGIN = 25.0
SIDE_MARGIN = 15.0


@dataclass
class Placement:
    """One drawn block, kept for inspection and debug logging."""

    kind: str
    page: int
    y: float
    height: float
    label: str = ""


def new_document() -> FPDF:
    pdf = FPDF(orientation="P", unit="mm", format=PAGE_FORMAT)
    # Page breaks belong to LayoutCursor alone
    pdf.set_auto_page_break(auto=False)
    pdf.set_margins(SIDE_MARGIN, TOP_MARGIN, SIDE_MARGIN)
    return pdf


@dataclass
class LayoutCursor:
    pdf: FPDF
    background: BackgroundCompositor
    top_margin: float = TOP_MARGIN
    bottom_margin: float = BOTTOM_MARGIN
    side_margin: float = SIDE_MARGIN
    y: float = TOP_MARGIN
    placements: list[Placement] = field(default_factory=list)

    @property
    def page_width(self) -> float:
        return self.pdf.w

    @property
    def page_height(self) -> float:
        return self.pdf.h

    @property
    def left(self) -> float:
        return self.side_margin

    @property
    def right(self) -> float:
        return self.page_width - self.side_margin

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.side_margin

    @property
    def limit(self) -> float:
        """Lowest y a block may reach on the current page."""
        return self.page_height - self.bottom_margin

    @property
    def page(self) -> int:
        return self.pdf.page_no()

    def new_page(self) -> None:
        """Add a page, lay the letterhead under it, move to the content top."""
        self.pdf.add_page()
        if self.background.apply(self.pdf):
            self.record("background", self.page_height, y=0.0)
        self.y = self.top_margin
        logger.debug("Started page %d", self.page)

    def ensure_space(self, height: float) -> bool:
        """Break to a new page unless *height* fits below the cursor.

        Returns True when a page break happened.  A block taller than the
        whole content area is not moved off a fresh page, it would never fit.
        """
        if self.y + height <= self.limit:
            return False
        if self.y <= self.top_margin:
            return False
        self.new_page()
        return True

    def advance(self, height: float) -> None:
        self.y += height

    def reset(self) -> None:
        self.y = self.top_margin

    def record(self, kind: str, height: float, *, y: float | None = None, label: str = "") -> None:
        self.placements.append(
            Placement(kind=kind, page=self.page, y=self.y if y is None else y, height=height, label=label)
        )

    def blocks(self, kind: str) -> list[Placement]:
        return [p for p in self.placements if p.kind == kind]


def fit_within(width: float, height: float, max_width: float, max_height: float) -> tuple[float, float]:
    """Scale (width, height) to fit the box, preserving the aspect ratio.

    Fills the box width first, then shrinks to the height limit.
    """
    if width <= 0 or height <= 0:
        return 0.0, 0.0
    w = max_width
    h = height / width * w
    if h > max_height:
        h = max_height
        w = width / height * h
    return w, h


def wrap_text(pdf: FPDF, text: str, width: float) -> list[str]:
    """Greedy word wrap using the current font metrics.

    Explicit newlines start new lines; words wider than *width* are split.
    """
    lines: list[str] = []
    for paragraph in pdf_safe(text).splitlines() or [""]:
        line = ""
        for word in paragraph.split():
            candidate = f"{line} {word}" if line else word
            if pdf.get_string_width(candidate) <= width:
                line = candidate
                continue
            if line:
                lines.append(line)
            while pdf.get_string_width(word) > width and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and pdf.get_string_width(word[:cut]) > width:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            line = word
        lines.append(line)
    return lines
