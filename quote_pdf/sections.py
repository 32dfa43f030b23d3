"""Section renderers, drawn in document order.

Each renderer takes the shared ``LayoutCursor`` plus the slice of the record
it needs, reserves room for any block that must not split across pages,
draws at ``cursor.y`` and advances the cursor by what it used.  The branch
box is the exception: it sits at fixed coordinates on page 1 and leaves the
cursor alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from fpdf import FPDF
from opentelemetry import trace

from quote_pdf.formatting import (
    format_currency,
    format_date,
    format_percentage,
    format_quantity,
    money,
    pdf_safe,
    to_decimal,
    truncate,
)
from quote_pdf.images import ImageFetcher, Raster
from quote_pdf.layout import LayoutCursor, fit_within, wrap_text
from quote_pdf.models import (
    Branch,
    DocumentRecord,
    ItemCustomization,
    LineItem,
    Party,
    PaymentPlan,
    ShippingPlan,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer("quote-pdf")

FONT = "Helvetica"
BLACK = (0, 0, 0)
GREY = (100, 100, 100)
DISCOUNT_RED = (180, 30, 30)

LINE_H = 6.0
SMALL_LINE_H = 4.0
SECTION_TITLE_H = 10.0
SECTION_GAP = 8.0

HEADER_H = 30.0

BRANCH_BOX_W = 75.0
BRANCH_BOX_Y = 8.0
BRANCH_BOX_PAD = 3.0
BRANCH_ADDRESS_LINES = 3

# Table columns: thumbnail, product, quantity, unit price, total
COLUMNS = (("", 18.0), ("Produto", 80.0), ("Qtd", 18.0), ("Preço Unit.", 31.0), ("Total", 33.0))
TABLE_HEADER_H = 8.0
THUMB_SIZE = 12.0
ROW_BASE_H = 16.0
ROW_EXTRA_LINE_H = 5.0
ROW_GAP = 2.0
NAME_LIMIT = 45
PARTY_LINE_LIMIT = 42
DESCRIPTION_LIMIT = 50

TOTALS_BOX_W = 95.0
TOTALS_PAD = 4.0
TOTALS_LINE_H = 7.0

NOTE_LINE_H = 5.0

GALLERY_MAX_W = 120.0
GALLERY_MAX_H = 90.0
GALLERY_PLACEHOLDER = (60.0, 40.0)


def _text(pdf: FPDF, x: float, y: float, text: str) -> None:
    pdf.text(x, y, pdf_safe(text))


def _text_right(pdf: FPDF, right: float, y: float, text: str) -> None:
    safe = pdf_safe(text)
    pdf.text(right - pdf.get_string_width(safe), y, safe)


def _style(pdf: FPDF, size: float, style: str = "", color: tuple[int, int, int] = BLACK) -> None:
    pdf.set_font(FONT, style, size)
    pdf.set_text_color(*color)


def draw_placeholder(pdf: FPDF, x: float, y: float, w: float, h: float, caption: str = "Imagem não disponível") -> None:
    """Neutral frame standing in for an image that failed to load."""
    pdf.set_draw_color(200, 200, 200)
    pdf.rect(x, y, w, h, style="D")
    _style(pdf, 6 if w < 30 else 8, color=GREY)
    safe = pdf_safe(caption)
    if pdf.get_string_width(safe) > w - 1:
        safe = pdf_safe("s/ img")
    pdf.text(x + (w - pdf.get_string_width(safe)) / 2, y + h / 2 + 1, safe)
    pdf.set_draw_color(0, 0, 0)


def _draw_raster(pdf: FPDF, raster: Raster, x: float, y: float, max_w: float, max_h: float) -> tuple[float, float]:
    w, h = fit_within(raster.width, raster.height, max_w, max_h)
    pdf.image(raster, x=x + (max_w - w) / 2, y=y + (max_h - h) / 2, w=w, h=h)
    return w, h


def _section_title(cursor: LayoutCursor, title: str, size: float = 12) -> None:
    _style(cursor.pdf, size, "B")
    _text(cursor.pdf, cursor.left, cursor.y + 5, title)
    cursor.advance(SECTION_TITLE_H)


# ---------------------------------------------------------------------------
# Branch box (page 1 only, fixed position)
# ---------------------------------------------------------------------------


def _branch_lines(pdf: FPDF, branch: Branch, width: float) -> list[tuple[str, str]]:
    lines = [("B", branch.name or "")]
    if branch.phone:
        lines.append(("", f"Tel: {branch.phone}"))
    if branch.email:
        lines.append(("", branch.email))
    if branch.address:
        _style(pdf, 8)
        wrapped = wrap_text(pdf, branch.address, width)
        if len(wrapped) > BRANCH_ADDRESS_LINES:
            wrapped = wrapped[:BRANCH_ADDRESS_LINES]
            wrapped[-1] = truncate(wrapped[-1], max(len(wrapped[-1]) - 3, 1))
        lines.extend(("", line) for line in wrapped)
    if branch.tax_id:
        lines.append(("", f"CNPJ: {branch.tax_id}"))
    return lines


def draw_branch_box(cursor: LayoutCursor, branch: Optional[Branch]) -> None:
    """Draw the branch contact box in the top-right corner of page 1."""
    if branch is None or not branch.show_on_first_page:
        return
    if cursor.page != 1:
        logger.warning("Branch box requested on page %d; it is only drawn on page 1", cursor.page)
        return

    pdf = cursor.pdf
    x = cursor.right - BRANCH_BOX_W
    inner = BRANCH_BOX_W - 2 * BRANCH_BOX_PAD
    lines = _branch_lines(pdf, branch, inner)
    height = 2 * BRANCH_BOX_PAD + SMALL_LINE_H * len(lines)

    pdf.set_fill_color(255, 255, 255)
    pdf.set_draw_color(200, 200, 200)
    pdf.rect(x, BRANCH_BOX_Y, BRANCH_BOX_W, height, style="DF")
    pdf.set_draw_color(0, 0, 0)

    y = BRANCH_BOX_Y + BRANCH_BOX_PAD + 3
    for style, line in lines:
        _style(pdf, 8, style)
        _text(pdf, x + BRANCH_BOX_PAD, y, truncate(line, 60))
        y += SMALL_LINE_H

    cursor.record("branch_box", height, y=BRANCH_BOX_Y, label=branch.name)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


def draw_header(cursor: LayoutCursor, record: DocumentRecord, generated_on: date) -> None:
    pdf = cursor.pdf
    cursor.ensure_space(HEADER_H)
    top = cursor.y

    _style(pdf, 18, "B")
    _text(pdf, cursor.left, top + 7, "ORÇAMENTO")
    if record.title:
        _style(pdf, 11, "B", GREY)
        _text(pdf, cursor.left, top + 13, truncate(record.title, 80))

    _style(pdf, 10)
    _text(pdf, cursor.left, top + 20, f"Número: {record.number}")
    _text_right(pdf, cursor.right, top + 20, f"Data: {format_date(generated_on)}")
    if record.valid_until:
        _text(pdf, cursor.left, top + 26, f"Válido até: {format_date(record.valid_until)}")
    if record.delivery_deadline:
        _text_right(pdf, cursor.right, top + 26, f"Prazo de entrega: {format_date(record.delivery_deadline)}")

    cursor.record("header", HEADER_H, label=record.number)
    cursor.advance(HEADER_H)


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


def _party_lines(party: Party) -> list[str]:
    lines = [party.name or "Não informado"]
    if party.contact_name:
        lines.append(f"Contato: {party.contact_name}")
    if party.email:
        lines.append(f"Email: {party.email}")
    if party.phone:
        lines.append(f"Telefone: {party.phone}")
    if party.tax_id:
        lines.append(f"CPF/CNPJ: {party.tax_id}")
    if party.address:
        lines.append(party.address)
    # The vendor column starts mid-page
    return [truncate(line, PARTY_LINE_LIMIT) for line in lines]


def _draw_party_column(pdf: FPDF, label: str, lines: list[str], x: float, y: float) -> float:
    """Draw one column starting at *y*; return the y just below it."""
    _style(pdf, 11, "B")
    _text(pdf, x, y + 4, label)
    y += LINE_H + 2
    _style(pdf, 10)
    for line in lines:
        _text(pdf, x, y + 4, line)
        y += LINE_H
    return y


def draw_parties(cursor: LayoutCursor, client: Party, vendor: Party) -> None:
    """Client on the left, vendor on the right, both starting at the block top.

    The cursor moves past whichever column turned out taller.
    """
    left_lines = _party_lines(client)
    right_lines = _party_lines(vendor)
    needed = LINE_H + 2 + LINE_H * max(len(left_lines), len(right_lines))
    cursor.ensure_space(needed)

    top = cursor.y
    left_end = _draw_party_column(cursor.pdf, "CLIENTE:", left_lines, cursor.left, top)
    right_end = _draw_party_column(
        cursor.pdf, "VENDEDOR:", right_lines, cursor.page_width / 2 + 10, top
    )

    used = max(left_end, right_end) - top
    cursor.record("parties", used)
    cursor.advance(used + SECTION_GAP)


# ---------------------------------------------------------------------------
# Line-item table
# ---------------------------------------------------------------------------


def _customization_text(custom: ItemCustomization) -> str:
    text = f"+ Personalização: {custom.description}"
    if custom.mode == "percentage" and to_decimal(custom.percentage) > 0:
        text += f" ({format_percentage(custom.percentage)})"
    elif to_decimal(custom.value) > 0:
        text += f" ({format_currency(custom.value)})"
    return text


def _extra_lines(item: LineItem) -> list[str]:
    """Optional lines printed under a row: dimensions, then customization."""
    lines = []
    dims = item.dimensions
    if dims is not None and not dims.is_empty:
        parts = []
        for label, value in (("L", dims.width), ("A", dims.height), ("P", dims.depth)):
            if value:
                parts.append(f"{label} {format_quantity(value)}")
        lines.append(f"Medidas: {' x '.join(parts)} cm")
    custom = item.customization
    if custom is not None and custom.description:
        lines.append(_customization_text(custom))
    return lines


def row_height(item: LineItem) -> float:
    """Height one item consumes, measured from the lines it actually has."""
    return ROW_BASE_H + ROW_EXTRA_LINE_H * len(_extra_lines(item)) + ROW_GAP


def _draw_table_header(cursor: LayoutCursor) -> None:
    pdf = cursor.pdf
    pdf.set_fill_color(240, 240, 240)
    pdf.rect(cursor.left, cursor.y, cursor.content_width, TABLE_HEADER_H, style="F")
    _style(pdf, 10, "B")
    x = cursor.left
    for title, width in COLUMNS:
        if title in ("Preço Unit.", "Total"):
            _text_right(pdf, x + width - 2, cursor.y + 5.5, title)
        else:
            _text(pdf, x + 2, cursor.y + 5.5, title)
        x += width
    cursor.record("table_header", TABLE_HEADER_H)
    cursor.advance(TABLE_HEADER_H + 2)


def _draw_item_row(
    cursor: LayoutCursor,
    item: LineItem,
    index: int,
    thumbnail: Optional[Raster],
    height: float,
) -> None:
    pdf = cursor.pdf
    top = cursor.y
    product = item.product

    if index % 2 == 1:
        pdf.set_fill_color(250, 250, 250)
        pdf.rect(cursor.left, top, cursor.content_width, height - ROW_GAP, style="F")

    x = cursor.left
    widths = [w for _, w in COLUMNS]

    thumb_x = x + (widths[0] - THUMB_SIZE) / 2
    if thumbnail is not None:
        _draw_raster(pdf, thumbnail, thumb_x, top + 2, THUMB_SIZE, THUMB_SIZE)
    else:
        draw_placeholder(pdf, thumb_x, top + 2, THUMB_SIZE, THUMB_SIZE, caption="s/ img")
    x += widths[0]

    _style(pdf, 10, "B")
    _text(pdf, x + 2, top + 6, truncate(product.name, NAME_LIMIT))
    if product.description:
        _style(pdf, 8, color=GREY)
        _text(pdf, x + 2, top + 11, truncate(product.description, DESCRIPTION_LIMIT))
    x += widths[1]

    _style(pdf, 10)
    _text(pdf, x + 2, top + 6, format_quantity(item.quantity))
    x += widths[2]
    _text_right(pdf, x + widths[3] - 2, top + 6, format_currency(item.unit_price))
    x += widths[3]
    _text_right(pdf, x + widths[4] - 2, top + 6, format_currency(item.total_price))

    y = top + ROW_BASE_H
    _style(pdf, 8, color=GREY)
    for line in _extra_lines(item):
        _text(pdf, cursor.left + widths[0] + 2, y + 1, truncate(line, 110))
        y += ROW_EXTRA_LINE_H

    cursor.record("item_row", height, label=product.name)
    cursor.advance(height)


def draw_items(cursor: LayoutCursor, items: list[LineItem], thumbnails: dict[str, Optional[Raster]]) -> None:
    """Table of items; *thumbnails* must already hold every item's image outcome."""
    first_row = row_height(items[0]) if items else LINE_H
    cursor.ensure_space(SECTION_TITLE_H + TABLE_HEADER_H + 2 + first_row)
    _section_title(cursor, "ITENS DO ORÇAMENTO", size=13)
    _draw_table_header(cursor)

    if not items:
        _style(cursor.pdf, 10, "I", GREY)
        _text(cursor.pdf, cursor.left + 2, cursor.y + 4, "Nenhum item informado.")
        cursor.advance(LINE_H)

    for index, item in enumerate(items):
        height = row_height(item)
        if cursor.ensure_space(height):
            _draw_table_header(cursor)
        url = item.product.image_url
        _draw_item_row(cursor, item, index, thumbnails.get(url) if url else None, height)

    cursor.advance(SECTION_GAP)


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


@dataclass
class Totals:
    subtotal: Decimal
    grand_total: Decimal
    discount: Optional[Decimal] = None
    customization: Optional[Decimal] = None


def summarize_totals(record: DocumentRecord) -> Totals:
    """Subtotal is summed here; the grand total is the record's, untouched."""
    items = record.items or []
    subtotal = sum((money(item.total_price) for item in items), Decimal("0.00"))

    discount = None
    if record.has_discount:
        if record.discount_type == "percentage":
            discount = money(subtotal * to_decimal(record.discount_percentage) / 100)
        else:
            discount = to_decimal(record.discount_value)

    customization = None
    if record.has_customization:
        if to_decimal(record.customization_value) > 0:
            customization = money(record.customization_value)
        else:
            customization = money(subtotal * to_decimal(record.customization_percentage) / 100)

    return Totals(
        subtotal=subtotal,
        grand_total=record.total_value,
        discount=discount,
        customization=customization,
    )


def _totals_lines(record: DocumentRecord, totals: Totals) -> list[tuple[str, str, str]]:
    """(label, value, kind) rows of the totals box."""
    lines = [("Subtotal:", format_currency(totals.subtotal), "")]
    if totals.customization is not None:
        label = "Personalização"
        if to_decimal(record.customization_value) <= 0:
            label += f" ({format_percentage(record.customization_percentage)})"
        lines.append((f"{label}:", f"+ {format_currency(totals.customization)}", ""))
        if record.customization_description:
            lines.append((truncate(record.customization_description, 48), "", "note"))
    if totals.discount is not None:
        label = "Desconto"
        if record.discount_type == "percentage":
            label += f" ({format_percentage(record.discount_percentage)})"
        lines.append((f"{label}:", f"- {format_currency(totals.discount)}", "discount"))
    lines.append(("TOTAL GERAL:", format_currency(totals.grand_total), "grand"))
    return lines


def draw_totals(cursor: LayoutCursor, record: DocumentRecord) -> Totals:
    totals = summarize_totals(record)
    lines = _totals_lines(record, totals)
    height = 2 * TOTALS_PAD + TOTALS_LINE_H * len(lines)
    cursor.ensure_space(height)

    pdf = cursor.pdf
    box_x = cursor.right - TOTALS_BOX_W
    top = cursor.y
    pdf.set_fill_color(240, 240, 240)
    pdf.rect(box_x, top, TOTALS_BOX_W, height, style="F")

    y = top + TOTALS_PAD + 5
    for label, value, kind in lines:
        if kind == "grand":
            _style(pdf, 12, "B")
        elif kind == "discount":
            _style(pdf, 10, "B", DISCOUNT_RED)
        elif kind == "note":
            _style(pdf, 8, "I", GREY)
        else:
            _style(pdf, 10)
        _text(pdf, box_x + TOTALS_PAD, y, label)
        if value:
            _text_right(pdf, box_x + TOTALS_BOX_W - TOTALS_PAD, y, value)
        y += TOTALS_LINE_H
    pdf.set_text_color(*BLACK)

    cursor.record("totals", height)
    cursor.advance(height + SECTION_GAP)
    return totals


# ---------------------------------------------------------------------------
# Payment / shipping
# ---------------------------------------------------------------------------


def _payment_lines(payment: PaymentPlan) -> list[tuple[str, str]]:
    lines = [("Forma de pagamento:", payment.method)]
    if payment.installments and payment.installments > 1:
        lines.append(("Parcelas:", f"{payment.installments}x"))
    if payment.down_payment is not None and payment.down_payment > 0:
        lines.append(("Entrada:", format_currency(payment.down_payment)))
        lines.append(("Restante:", format_currency(payment.remaining_amount or 0)))
    rate = to_decimal(payment.interest_rate)
    value = to_decimal(payment.interest_value)
    if rate > 0 or value > 0:
        parts = []
        if rate > 0:
            parts.append(format_percentage(rate))
        if value > 0:
            parts.append(format_currency(value))
        lines.append(("Juros do cartão:", " / ".join(parts)))
    return lines


def _shipping_lines(shipping: ShippingPlan) -> list[tuple[str, str]]:
    lines = [("Frete:", shipping.method)]
    if shipping.delivery_type == "pickup":
        lines.append(("Entrega:", "Retirada no local"))
    if shipping.cost is not None:
        lines.append(("Valor do frete:", format_currency(shipping.cost)))
    return lines


def draw_payment_shipping(
    cursor: LayoutCursor,
    payment: Optional[PaymentPlan],
    shipping: Optional[ShippingPlan],
) -> None:
    lines: list[tuple[str, str]] = []
    if payment is not None and payment.method:
        lines.extend(_payment_lines(payment))
    if shipping is not None and shipping.method:
        lines.extend(_shipping_lines(shipping))
    if not lines:
        return

    height = SECTION_TITLE_H + LINE_H * len(lines)
    cursor.ensure_space(height)
    cursor.record("payment_shipping", height)
    _section_title(cursor, "PAGAMENTO E FRETE")

    pdf = cursor.pdf
    for label, value in lines:
        _style(pdf, 10, "B")
        _text(pdf, cursor.left, cursor.y + 4, label)
        _style(pdf, 10)
        _text(pdf, cursor.left + 45, cursor.y + 4, truncate(value, 70))
        cursor.advance(LINE_H)
    cursor.advance(SECTION_GAP)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


def draw_notes(cursor: LayoutCursor, notes: Optional[str]) -> None:
    """Word-wrapped free text; long notes may continue on the next page."""
    if not notes or not notes.strip():
        return
    pdf = cursor.pdf
    _style(pdf, 10)
    lines = wrap_text(pdf, notes.strip(), cursor.content_width)

    # Keep the title together with the first few lines
    cursor.ensure_space(SECTION_TITLE_H + NOTE_LINE_H * min(len(lines), 3))
    cursor.record("notes", SECTION_TITLE_H + NOTE_LINE_H * len(lines))
    _section_title(cursor, "OBSERVAÇÕES:")

    for line in lines:
        cursor.ensure_space(NOTE_LINE_H)
        _style(pdf, 10)
        pdf.text(cursor.left, cursor.y + 4, line)
        cursor.advance(NOTE_LINE_H)
    cursor.advance(SECTION_GAP)


# ---------------------------------------------------------------------------
# Customization gallery
# ---------------------------------------------------------------------------


async def draw_gallery(cursor: LayoutCursor, items: list[LineItem], fetcher: ImageFetcher) -> None:
    """One block per item with a customization photo, loaded as it is reached."""
    with_photos = [item for item in items if item.customization_photo]
    if not with_photos:
        return

    pdf = cursor.pdf
    with tracer.start_as_current_span("quote.render_gallery", attributes={"gallery.count": len(with_photos)}):
        for index, item in enumerate(with_photos):
            raster = await fetcher.fetch_and_decode(item.customization_photo)
            if raster is not None:
                width, height = fit_within(raster.width, raster.height, GALLERY_MAX_W, GALLERY_MAX_H)
            else:
                width, height = GALLERY_PLACEHOLDER

            note = item.customization.description if item.customization else None
            block = LINE_H + (5.0 if note else 0.0) + 4 + height + 10
            if index == 0:
                # The title never sits alone at the foot of a page
                cursor.ensure_space(SECTION_TITLE_H + 4 + block)
                cursor.record("gallery_title", SECTION_TITLE_H)
                _section_title(cursor, "PERSONALIZAÇÕES DOS PRODUTOS", size=13)
                cursor.advance(4)
            cursor.ensure_space(block)
            top = cursor.y

            _style(pdf, 12, "B")
            _text(pdf, cursor.left, top + 4, truncate(item.product.name, 80))
            y = top + LINE_H
            if note:
                _style(pdf, 10, color=GREY)
                _text(pdf, cursor.left, y + 3, truncate(f"Personalização: {note}", 90))
                y += 5.0
            y += 4

            image_x = cursor.left + (cursor.content_width - width) / 2
            if raster is not None:
                pdf.image(raster, x=image_x, y=y, w=width, h=height)
            else:
                draw_placeholder(pdf, image_x, y, width, height)

            cursor.record("gallery_block", block, label=item.product.name)
            cursor.advance(block)
        pdf.set_text_color(*BLACK)
